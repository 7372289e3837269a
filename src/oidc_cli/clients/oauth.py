from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx
from pydantic import ValidationError

from oidc_cli.clients.discovery import DiscoveryResolver
from oidc_cli.clients.types import DiscoveryDocument, ProviderEndpoints, TokenResult
from oidc_cli.errors import AuthError, ConfigError, InvalidTokenResponse, StateMismatch
from oidc_cli.profiles.models import Profile
from oidc_cli.security import PkceMaterial, generate_state
from oidc_cli.settings import get_settings
from oidc_cli.urls import append_query, is_http_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlowState:
    """Correlation material for one login attempt. Held in memory only."""

    state: str
    pkce: PkceMaterial
    expected_redirect_uri: str


@dataclass(frozen=True)
class AuthorizationRequest:
    url: str
    flow: FlowState

    @property
    def state(self) -> str:
        return self.flow.state

    @property
    def pkce(self) -> PkceMaterial:
        return self.flow.pkce


def static_endpoints(profile: Profile) -> ProviderEndpoints:
    if not profile.authorization_endpoint:
        raise ConfigError("Missing authorization endpoint", error="configuration_error")
    if not profile.token_endpoint:
        raise ConfigError("Missing token endpoint", error="configuration_error")
    for label, url in (
        ("authorization endpoint", profile.authorization_endpoint),
        ("token endpoint", profile.token_endpoint),
    ):
        if not is_http_url(url):
            raise ConfigError(f"Invalid {label}: {url}", error="configuration_error")
    return ProviderEndpoints(
        authorization_endpoint=profile.authorization_endpoint,
        token_endpoint=profile.token_endpoint,
    )


async def resolve_endpoints(
    profile: Profile, resolver: Optional[DiscoveryResolver] = None
) -> tuple[ProviderEndpoints, Optional[DiscoveryDocument]]:
    """Resolve endpoints from discovery when configured, else from the profile."""
    if profile.discovery_uri:
        document = await (resolver or DiscoveryResolver()).resolve(profile.discovery_uri)
        return document.endpoints(), document
    if not profile.has_static_endpoints():
        raise ConfigError(
            "Either discovery_uri or both authorization_endpoint and token_endpoint must be provided",
            error="configuration_error",
        )
    return static_endpoints(profile), None


def build_authorization_request(
    profile: Profile,
    endpoints: ProviderEndpoints,
    *,
    redirect_uri: Optional[str] = None,
) -> AuthorizationRequest:
    """Generate fresh PKCE material and state and build the browser URL.

    ``redirect_uri`` overrides the profile's value, e.g. once an ephemeral
    loopback port is known.
    """
    if not profile.client_id:
        raise ConfigError("Missing required field: client_id", error="missing_field")
    redirect = redirect_uri or profile.redirect_uri
    if not redirect:
        raise ConfigError("Missing required field: redirect_uri", error="missing_field")

    pkce = PkceMaterial.generate()
    state = generate_state()
    params: Dict[str, Any] = {
        "response_type": "code",
        "client_id": profile.client_id,
        "redirect_uri": redirect,
        "scope": profile.scope,
        "state": state,
        "code_challenge": pkce.challenge,
        "code_challenge_method": pkce.method,
    }
    url = append_query(endpoints.authorization_endpoint, params)
    return AuthorizationRequest(
        url=url,
        flow=FlowState(state=state, pkce=pkce, expected_redirect_uri=redirect),
    )


class TokenExchanger:
    """Redeems an authorization code at the token endpoint."""

    def __init__(self, *, timeout: float | None = None) -> None:
        self._timeout = timeout if timeout is not None else get_settings().flow.token_timeout

    async def exchange(
        self,
        *,
        code: str,
        received_state: str,
        expected_state: str,
        pkce_verifier: str,
        endpoints: ProviderEndpoints,
        profile: Profile,
        redirect_uri: Optional[str] = None,
    ) -> TokenResult:
        # Checked before any request leaves the process
        if received_state != expected_state:
            raise StateMismatch()

        data: Dict[str, Any] = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri or profile.redirect_uri,
            "client_id": profile.client_id,
            "code_verifier": pkce_verifier,
        }
        auth: tuple[str, str] | None = None
        if profile.client_secret:
            auth = (profile.client_id, profile.client_secret)

        logger.debug(
            "exchanging authorization code",
            extra={"url": endpoints.token_endpoint, "confidential": auth is not None},
        )
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    endpoints.token_endpoint,
                    data=data,
                    headers={"Accept": "application/json"},
                    auth=auth,
                )
        except httpx.HTTPError as exc:
            raise AuthError(
                f"Network error during token exchange: {exc}",
                error="network_error",
                description=str(exc),
            ) from exc

        if not resp.is_success:
            payload = _safe_json(resp)
            raise AuthError(
                f"Token exchange failed with status {resp.status_code}: {resp.text}",
                error=_error_code(payload),
                description=_error_description(payload, resp.text),
                status_code=resp.status_code,
                details=payload,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise InvalidTokenResponse(f"Failed to parse token response: {exc}", details={"raw": resp.text}) from exc
        return parse_token_response(payload)


def parse_token_response(payload: Any) -> TokenResult:
    if not isinstance(payload, Mapping):
        raise InvalidTokenResponse("Invalid token response: expected a JSON object")
    try:
        result = TokenResult.model_validate(dict(payload))
    except ValidationError as exc:
        raise InvalidTokenResponse(f"Invalid token response: {exc}", details=dict(payload)) from exc
    validate_token_response(result)
    return result


def validate_token_response(result: TokenResult) -> None:
    if not result.access_token:
        raise InvalidTokenResponse("Invalid token response: empty access_token")
    if not result.token_type:
        raise InvalidTokenResponse("Invalid token response: empty token_type")


def _safe_json(resp: httpx.Response) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {"raw": resp.text}
    return data if isinstance(data, dict) else {"raw": resp.text}


def _error_code(payload: Mapping[str, Any]) -> str | None:
    for key in ("error", "error_code", "code"):
        value = payload.get(key)
        if isinstance(value, str):
            return value
    return None


def _error_description(payload: Mapping[str, Any], default: str) -> str:
    for key in ("error_description", "message", "error_message"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return default
