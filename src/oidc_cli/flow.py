"""Login flow orchestration.

:class:`LoginFlow` runs one Authorization Code + PKCE login for a profile:
resolve endpoints, build the authorization request, send the user to the
browser, wait for the redirect (or a manually pasted code) and redeem the
code. Either a validated :class:`~oidc_cli.clients.types.TokenResult` is
returned or the first error raised along the way propagates unchanged.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from oidc_cli.browser import open_browser_with_fallback
from oidc_cli.callbacks import CallbackOutcome, CallbackProviderError
from oidc_cli.clients.discovery import DiscoveryResolver
from oidc_cli.clients.oauth import (
    AuthorizationRequest,
    TokenExchanger,
    build_authorization_request,
    resolve_endpoints,
)
from oidc_cli.clients.types import DiscoveryDocument, ProviderEndpoints, TokenResult
from oidc_cli.errors import AuthError, DiscoveryError
from oidc_cli.profiles.models import Profile
from oidc_cli.server import CallbackListener
from oidc_cli.settings import get_settings
from oidc_cli.ui.manual_entry import prompt_for_authorization_code
from oidc_cli.ui.types import UserInterface
from oidc_cli.urls import is_loopback_redirect_uri

logger = logging.getLogger(__name__)

BrowserOpener = Callable[[str, UserInterface], bool]

T = TypeVar("T")


class FlowStage(str, Enum):
    INITIATED = "initiated"
    ENDPOINTS_RESOLVED = "endpoints_resolved"
    REQUEST_BUILT = "request_built"
    AWAITING_CALLBACK = "awaiting_callback"
    TOKENS_EXCHANGED = "tokens_exchanged"
    FAILED = "failed"


class LoginFlow:
    def __init__(
        self,
        profile: Profile,
        *,
        ui: UserInterface,
        port: Optional[int] = None,
        expose_token: Optional[bool] = None,
        resolver: Optional[DiscoveryResolver] = None,
        exchanger: Optional[TokenExchanger] = None,
        browser: BrowserOpener = open_browser_with_fallback,
        callback_timeout: Optional[float] = None,
    ) -> None:
        s = get_settings()
        self.profile = profile
        self.ui = ui
        self.port = port
        self.expose_token = s.flow.expose_token_to_browser if expose_token is None else expose_token
        self.callback_timeout = s.flow.callback_timeout if callback_timeout is None else callback_timeout
        self.handoff_linger = s.flow.token_handoff_linger
        self._resolver = resolver or DiscoveryResolver()
        self._exchanger = exchanger or TokenExchanger()
        self._browser = browser

        self.stage = FlowStage.INITIATED
        self.endpoints: Optional[ProviderEndpoints] = None
        self.request: Optional[AuthorizationRequest] = None

    async def run(self) -> TokenResult:
        try:
            return await self._run()
        except (Exception, asyncio.CancelledError):
            self._advance(FlowStage.FAILED)
            raise

    def _advance(self, stage: FlowStage) -> None:
        self.stage = stage
        logger.debug("flow stage changed", extra={"stage": stage.value})

    async def _run(self) -> TokenResult:
        endpoints, document = await resolve_endpoints(self.profile, self._resolver)
        if document is not None:
            _check_capabilities(document)
        self.endpoints = endpoints
        self._advance(FlowStage.ENDPOINTS_RESOLVED)

        if is_loopback_redirect_uri(self.profile.redirect_uri):
            return await self._run_with_listener(endpoints)
        return await self._run_with_manual_entry(endpoints)

    async def _run_with_listener(self, endpoints: ProviderEndpoints) -> TokenResult:
        async with CallbackListener(
            self.profile.redirect_uri, port=self.port, expose_token=self.expose_token
        ) as listener:
            # Built after binding so an ephemeral port lands in redirect_uri
            request = self._build(endpoints, listener.effective_redirect_uri)

            self._advance(FlowStage.AWAITING_CALLBACK)
            self.ui.display("Waiting for authentication callback...")
            self.ui.display("Press Ctrl+C to cancel")
            outcome = await listener.wait_for_callback(self.callback_timeout)
            code, state = _unpack(outcome)

            token = await self._exchange(code, state, request, endpoints)
            if listener.exposes_token:
                listener.publish_token(token)
                self.ui.display("Token is now available in the browser.")
                await asyncio.sleep(self.handoff_linger)
            return token

    async def _run_with_manual_entry(self, endpoints: ProviderEndpoints) -> TokenResult:
        request = self._build(endpoints, self.profile.redirect_uri)

        self._advance(FlowStage.AWAITING_CALLBACK)
        code = await _in_daemon_thread(prompt_for_authorization_code, self.ui)
        # No redirect reaches this process, so the state sent out stands in for the echo
        return await self._exchange(code, request.state, request, endpoints)

    def _build(self, endpoints: ProviderEndpoints, redirect_uri: str) -> AuthorizationRequest:
        request = build_authorization_request(self.profile, endpoints, redirect_uri=redirect_uri)
        self.request = request
        self._advance(FlowStage.REQUEST_BUILT)

        self.ui.display("Initiating OAuth 2.0 authorization flow...")
        self._browser(request.url, self.ui)
        return request

    async def _exchange(
        self,
        code: str,
        state: str,
        request: AuthorizationRequest,
        endpoints: ProviderEndpoints,
    ) -> TokenResult:
        logger.info("received authorization code, exchanging for tokens")
        token = await self._exchanger.exchange(
            code=code,
            received_state=state,
            expected_state=request.state,
            pkce_verifier=request.pkce.verifier,
            endpoints=endpoints,
            profile=self.profile,
            redirect_uri=request.flow.expected_redirect_uri,
        )
        self._advance(FlowStage.TOKENS_EXCHANGED)
        return token


def _check_capabilities(document: DiscoveryDocument) -> None:
    if not document.supports_authorization_code():
        raise DiscoveryError("Authorization code flow not supported", error="unsupported_response_type")
    if document.code_challenge_methods_supported is None:
        logger.warning("provider does not advertise code_challenge_methods_supported; assuming S256")
    elif not document.supports_pkce():
        raise DiscoveryError("Provider does not support PKCE with S256", error="unsupported_pkce_method")


def _unpack(outcome: CallbackOutcome) -> tuple[str, str]:
    if isinstance(outcome, CallbackProviderError):
        description = outcome.error_description or ""
        raise AuthError(
            f"Authentication failed: {outcome.error} - {description}",
            error=outcome.error,
            description=outcome.error_description,
        )
    return outcome.code, outcome.state


async def _in_daemon_thread(func: Callable[..., T], *args: Any) -> T:
    """Run a blocking terminal read off the event loop.

    The thread is a daemon so a read still blocked on stdin after
    cancellation does not hold the process open.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[T] = loop.create_future()

    def _settle(result: Any, exc: Optional[BaseException]) -> None:
        if future.done():
            return
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(result)

    def _target() -> None:
        try:
            result = func(*args)
        except BaseException as exc:
            loop.call_soon_threadsafe(_settle, None, exc)
        else:
            loop.call_soon_threadsafe(_settle, result, None)

    threading.Thread(target=_target, name="oidc-cli-prompt", daemon=True).start()
    return await future
