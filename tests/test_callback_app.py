import httpx
import pytest
from httpx import AsyncClient

from oidc_cli.app.factory import create_callback_app
from oidc_cli.callbacks import CallbackChannel, CallbackProviderError, CallbackSuccess, TokenCell
from oidc_cli.clients.types import TokenResult
from oidc_cli.urls import extract_callback_path


def _client(app):
    transport = httpx.ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://127.0.0.1:8080")


@pytest.mark.asyncio
async def test_success_delivers_code_and_state():
    channel = CallbackChannel()
    app = create_callback_app("/callback", channel)
    async with _client(app) as ac:
        resp = await ac.get("/callback", params={"code": "abc123", "state": "xyz"})
        assert resp.status_code == 200
        assert "text/html" in resp.headers["content-type"]
        assert "no-store" in resp.headers["cache-control"]
        assert "Authentication Successful" in resp.text

    assert channel.delivered
    assert await channel.receive() == CallbackSuccess(code="abc123", state="xyz")


@pytest.mark.asyncio
async def test_provider_error_is_delivered_and_rendered():
    channel = CallbackChannel()
    app = create_callback_app("/callback", channel)
    async with _client(app) as ac:
        resp = await ac.get(
            "/callback",
            params={"error": "access_denied", "error_description": "<b>User said no</b>", "state": "xyz"},
        )
        assert resp.status_code == 400
        assert "access_denied" in resp.text
        # Query text is escaped, never interpreted
        assert "<b>User said no</b>" not in resp.text
        assert "&lt;b&gt;User said no&lt;/b&gt;" in resp.text

    outcome = await channel.receive()
    assert outcome == CallbackProviderError(error="access_denied", error_description="<b>User said no</b>", state="xyz")


@pytest.mark.asyncio
async def test_missing_parameters_is_rejected_without_delivery():
    channel = CallbackChannel()
    app = create_callback_app("/callback", channel)
    async with _client(app) as ac:
        for params in ({}, {"code": "abc"}, {"state": "xyz"}, {"code": "", "state": "xyz"}):
            resp = await ac.get("/callback", params=params)
            assert resp.status_code == 400
            assert "Missing required parameters" in resp.text
    assert not channel.delivered


@pytest.mark.asyncio
async def test_unknown_path_is_not_found():
    app = create_callback_app("/callback", CallbackChannel())
    async with _client(app) as ac:
        for path in ("/", "/other", "/docs", "/openapi.json", "/token"):
            resp = await ac.get(path)
            assert resp.status_code == 404
            assert "no-store" in resp.headers["cache-control"]


@pytest.mark.asyncio
async def test_non_get_is_method_not_allowed():
    channel = CallbackChannel()
    app = create_callback_app("/callback", channel)
    async with _client(app) as ac:
        resp = await ac.post("/callback", data={"code": "abc", "state": "xyz"})
        assert resp.status_code == 405
        assert resp.headers["allow"] == "GET"
        resp = await ac.put("/elsewhere")
        assert resp.status_code == 405
    assert not channel.delivered


@pytest.mark.asyncio
async def test_custom_callback_path():
    channel = CallbackChannel()
    app = create_callback_app("/docs/ui", channel)
    async with _client(app) as ac:
        assert (await ac.get("/callback", params={"code": "a", "state": "b"})).status_code == 404
        assert (await ac.get("/docs/ui", params={"code": "a", "state": "b"})).status_code == 200
    assert channel.delivered


@pytest.mark.asyncio
async def test_first_delivery_wins():
    channel = CallbackChannel()
    app = create_callback_app("/callback", channel)
    async with _client(app) as ac:
        first = await ac.get("/callback?code=first&state=s1")
        second = await ac.get("/callback?error=access_denied")
        third = await ac.get("/callback?code=third&state=s3")
        assert first.status_code == 200
        assert second.status_code == 400
        assert third.status_code == 200

    assert await channel.receive() == CallbackSuccess(code="first", state="s1")


@pytest.mark.asyncio
async def test_duplicate_query_keys_use_first_value():
    channel = CallbackChannel()
    app = create_callback_app("/callback", channel)
    async with _client(app) as ac:
        await ac.get("/callback?code=one&code=two&state=s")
    assert await channel.receive() == CallbackSuccess(code="one", state="s")


@pytest.mark.asyncio
async def test_token_handoff_endpoint():
    cell = TokenCell()
    app = create_callback_app("/callback", CallbackChannel(), token_cell=cell)
    async with _client(app) as ac:
        page = await ac.get("/callback", params={"code": "abc", "state": "xyz"})
        assert "/token" in page.text
        # Polling only continues while the token is pending
        assert "resp.status === 204" in page.text

        pending = await ac.get("/token")
        assert pending.status_code == 204

        cell.set(TokenResult(access_token="tok", token_type="Bearer", expires_in=60, refresh_token="ref"))
        ready = await ac.get("/token")
        assert ready.status_code == 200
        assert ready.json() == {"access_token": "tok", "token_type": "Bearer", "expires_in": 60}


def test_token_cell_is_write_once():
    cell = TokenCell()
    assert cell.get() is None
    cell.set(TokenResult(access_token="a", token_type="Bearer"))
    with pytest.raises(RuntimeError):
        cell.set(TokenResult(access_token="b", token_type="Bearer"))
    assert cell.get().access_token == "a"


@pytest.mark.asyncio
async def test_trailing_slash_is_not_redirected():
    channel = CallbackChannel()
    app = create_callback_app("/callback", channel)
    async with _client(app) as ac:
        resp = await ac.get("/callback/", params={"code": "a", "state": "b"})
        assert resp.status_code == 404
        assert "location" not in resp.headers
    assert not channel.delivered


@pytest.mark.asyncio
async def test_percent_encoded_callback_path():
    channel = CallbackChannel()
    app = create_callback_app(extract_callback_path("http://localhost:8080/call%20back"), channel)
    async with _client(app) as ac:
        resp = await ac.get("/call%20back", params={"code": "a", "state": "b"})
        assert resp.status_code == 200
    assert await channel.receive() == CallbackSuccess(code="a", state="b")
