import base64
from urllib.parse import parse_qs, urlsplit

import pytest
import respx
from httpx import Response

from oidc_cli.clients.oauth import (
    TokenExchanger,
    build_authorization_request,
    parse_token_response,
    resolve_endpoints,
)
from oidc_cli.clients.types import ProviderEndpoints
from oidc_cli.errors import AuthError, ConfigError, InvalidTokenResponse, StateMismatch
from oidc_cli.profiles.models import Profile
from oidc_cli.security import code_challenge_s256

ENDPOINTS = ProviderEndpoints(
    authorization_endpoint="https://idp.example.com/authorize",
    token_endpoint="https://idp.example.com/token",
)


def _profile(**overrides):
    data = {
        "client_id": "cli-app",
        "redirect_uri": "http://localhost:8080/callback",
        "scope": "openid profile",
        "authorization_endpoint": ENDPOINTS.authorization_endpoint,
        "token_endpoint": ENDPOINTS.token_endpoint,
    }
    data.update(overrides)
    return Profile(**data)


def _exchange_kwargs(request, **overrides):
    kwargs = {
        "code": "abc123",
        "received_state": request.state,
        "expected_state": request.state,
        "pkce_verifier": request.pkce.verifier,
        "endpoints": ENDPOINTS,
        "profile": _profile(),
    }
    kwargs.update(overrides)
    return kwargs


def test_build_authorization_request_params():
    request = build_authorization_request(_profile(), ENDPOINTS)
    parts = urlsplit(request.url)
    params = {k: v[0] for k, v in parse_qs(parts.query).items()}

    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == ENDPOINTS.authorization_endpoint
    assert params["response_type"] == "code"
    assert params["client_id"] == "cli-app"
    assert params["redirect_uri"] == "http://localhost:8080/callback"
    assert params["scope"] == "openid profile"
    assert params["state"] == request.state
    assert params["code_challenge"] == code_challenge_s256(request.pkce.verifier)
    assert params["code_challenge_method"] == "S256"
    assert request.flow.expected_redirect_uri == "http://localhost:8080/callback"


def test_build_authorization_request_redirect_override():
    request = build_authorization_request(_profile(), ENDPOINTS, redirect_uri="http://localhost:5123/callback")
    params = parse_qs(urlsplit(request.url).query)
    assert params["redirect_uri"] == ["http://localhost:5123/callback"]
    assert request.flow.expected_redirect_uri == "http://localhost:5123/callback"


def test_each_request_gets_fresh_material():
    first = build_authorization_request(_profile(), ENDPOINTS)
    second = build_authorization_request(_profile(), ENDPOINTS)
    assert first.state != second.state
    assert first.pkce.verifier != second.pkce.verifier


@pytest.mark.asyncio
async def test_resolve_endpoints_from_profile():
    endpoints, document = await resolve_endpoints(_profile())
    assert endpoints == ENDPOINTS
    assert document is None


@pytest.mark.asyncio
async def test_resolve_endpoints_requires_configuration():
    with pytest.raises(ConfigError):
        await resolve_endpoints(_profile(authorization_endpoint=None, token_endpoint=None))


def test_token_validation():
    with pytest.raises(InvalidTokenResponse):
        parse_token_response({"access_token": "", "token_type": "Bearer"})
    with pytest.raises(InvalidTokenResponse):
        parse_token_response({"access_token": "tok", "token_type": ""})
    with pytest.raises(InvalidTokenResponse):
        parse_token_response(["not", "an", "object"])

    token = parse_token_response({"access_token": "tok", "token_type": "Bearer", "unknown": 1})
    assert token.access_token == "tok"
    assert token.expires_in is None


@pytest.mark.asyncio
async def test_state_mismatch_sends_nothing():
    request = build_authorization_request(_profile(), ENDPOINTS)

    with respx.mock(assert_all_called=False) as router:
        route = router.post(ENDPOINTS.token_endpoint).mock(
            return_value=Response(200, json={"access_token": "tok", "token_type": "Bearer"})
        )
        with pytest.raises(StateMismatch):
            await TokenExchanger(timeout=5).exchange(**_exchange_kwargs(request, received_state="forged"))
    assert route.call_count == 0


@pytest.mark.asyncio
@respx.mock
async def test_exchange_posts_form_for_public_client():
    route = respx.post(ENDPOINTS.token_endpoint).mock(
        return_value=Response(
            200,
            json={
                "access_token": "tok",
                "token_type": "Bearer",
                "expires_in": 3600,
                "refresh_token": "ref",
                "id_token": "idt",
                "scope": "openid profile",
            },
        )
    )
    request = build_authorization_request(_profile(), ENDPOINTS)

    token = await TokenExchanger(timeout=5).exchange(**_exchange_kwargs(request))
    assert token.access_token == "tok"
    assert token.expires_in == 3600
    assert token.refresh_token == "ref"

    sent = route.calls.last.request
    form = {k: v[0] for k, v in parse_qs(sent.content.decode()).items()}
    assert form == {
        "grant_type": "authorization_code",
        "code": "abc123",
        "redirect_uri": "http://localhost:8080/callback",
        "client_id": "cli-app",
        "code_verifier": request.pkce.verifier,
    }
    assert "authorization" not in sent.headers


@pytest.mark.asyncio
@respx.mock
async def test_exchange_uses_basic_auth_with_secret():
    route = respx.post(ENDPOINTS.token_endpoint).mock(
        return_value=Response(200, json={"access_token": "tok", "token_type": "Bearer"})
    )
    profile = _profile(client_secret="s3cret")
    request = build_authorization_request(profile, ENDPOINTS)

    await TokenExchanger(timeout=5).exchange(**_exchange_kwargs(request, profile=profile))
    expected = base64.b64encode(b"cli-app:s3cret").decode()
    assert route.calls.last.request.headers["authorization"] == f"Basic {expected}"


@pytest.mark.asyncio
@respx.mock
async def test_exchange_error_status_raises_auth_error():
    respx.post(ENDPOINTS.token_endpoint).mock(
        return_value=Response(400, json={"error": "invalid_grant", "error_description": "Code expired"})
    )
    request = build_authorization_request(_profile(), ENDPOINTS)

    with pytest.raises(AuthError) as ei:
        await TokenExchanger(timeout=5).exchange(**_exchange_kwargs(request))
    assert ei.value.status_code == 400
    assert ei.value.error == "invalid_grant"
    assert ei.value.description == "Code expired"
    assert "400" in str(ei.value)


@pytest.mark.asyncio
@respx.mock
async def test_exchange_non_json_body():
    respx.post(ENDPOINTS.token_endpoint).mock(return_value=Response(200, text="access_token=tok"))
    request = build_authorization_request(_profile(), ENDPOINTS)

    with pytest.raises(InvalidTokenResponse):
        await TokenExchanger(timeout=5).exchange(**_exchange_kwargs(request))
