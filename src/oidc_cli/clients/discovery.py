from __future__ import annotations

import logging
from typing import Any, Dict

import httpx
from pydantic import ValidationError

from oidc_cli.clients.types import DiscoveryDocument
from oidc_cli.errors import DiscoveryError
from oidc_cli.settings import get_settings
from oidc_cli.urls import is_http_url

logger = logging.getLogger(__name__)


class DiscoveryResolver:
    """Fetches and validates a provider's OIDC discovery document.

    Every call issues a fresh GET; nothing is cached between flows and a
    failed fetch is never retried.
    """

    def __init__(self, *, timeout: float | None = None) -> None:
        self._timeout = timeout if timeout is not None else get_settings().flow.discovery_timeout

    async def resolve(self, discovery_url: str) -> DiscoveryDocument:
        if not is_http_url(discovery_url):
            raise DiscoveryError(f"Invalid discovery URI: {discovery_url}", error="invalid_discovery_uri")

        logger.debug("fetching discovery document", extra={"url": discovery_url})
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(
                    discovery_url,
                    headers={"Accept": "application/json"},
                    follow_redirects=True,
                )
        except httpx.HTTPError as exc:
            raise DiscoveryError(
                "Failed to load provider metadata",
                error="discovery_error",
                description=str(exc),
            ) from exc

        if not resp.is_success:
            raise DiscoveryError(
                f"Discovery request failed with status: {resp.status_code}",
                error="discovery_error",
                status_code=resp.status_code,
                description=resp.text,
            )

        try:
            data: Dict[str, Any] = resp.json()
        except ValueError as exc:
            raise DiscoveryError(f"Failed to parse discovery document: {exc}", error="invalid_discovery_document") from exc

        return parse_discovery_document(data)


def parse_discovery_document(data: Any) -> DiscoveryDocument:
    if not isinstance(data, dict):
        raise DiscoveryError("Failed to parse discovery document: expected a JSON object", error="invalid_discovery_document")
    try:
        doc = DiscoveryDocument.model_validate(data)
    except ValidationError as exc:
        raise DiscoveryError(f"Failed to parse discovery document: {exc}", error="invalid_discovery_document") from exc
    validate_discovery_document(doc)
    return doc


def validate_discovery_document(doc: DiscoveryDocument) -> None:
    if not doc.authorization_endpoint:
        raise DiscoveryError("Missing authorization_endpoint in discovery document")
    if not doc.token_endpoint:
        raise DiscoveryError("Missing token_endpoint in discovery document")
    if not doc.issuer:
        raise DiscoveryError("Missing issuer in discovery document")
    if not is_http_url(doc.authorization_endpoint):
        raise DiscoveryError("Invalid authorization_endpoint URL")
    if not is_http_url(doc.token_endpoint):
        raise DiscoveryError("Invalid token_endpoint URL")
    if not doc.supports_authorization_code():
        raise DiscoveryError("Authorization code flow not supported", error="unsupported_response_type")
