"""Loopback callback server for one authorization redirect.

:class:`CallbackListener` binds a loopback socket, serves the callback app
with uvicorn in a background task and hands the first valid redirect to
the waiting flow::

    async with CallbackListener("http://localhost:0/callback") as listener:
        outcome = await listener.wait_for_callback(timeout=300)

Leaving the ``async with`` block always shuts the server down and releases
the socket, including on timeout and task cancellation.
"""
from __future__ import annotations

import asyncio
import contextlib
import ipaddress
import logging
import socket
from enum import Enum
from typing import Iterator, Optional
from urllib.parse import urlsplit

import uvicorn

from oidc_cli.app.factory import create_callback_app
from oidc_cli.callbacks import CallbackChannel, CallbackOutcome, TokenCell
from oidc_cli.clients.types import TokenResult
from oidc_cli.errors import AuthTimeout, CallbackServerError, FlowCancelled
from oidc_cli.settings import get_settings
from oidc_cli.urls import (
    extract_callback_path,
    extract_port_from_redirect_uri,
    replace_port,
)

logger = logging.getLogger(__name__)


class ListenerState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    CALLBACK_RECEIVED = "callback_received"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    STOPPED = "stopped"


class _LoopbackServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the caller."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


def _loopback_host(redirect_uri: str) -> str:
    host = urlsplit(redirect_uri).hostname or ""
    try:
        if ipaddress.ip_address(host).version == 6:
            return "::1"
    except ValueError:
        pass
    return "127.0.0.1"


class CallbackListener:
    def __init__(
        self,
        redirect_uri: str,
        *,
        port: Optional[int] = None,
        expose_token: bool = False,
    ) -> None:
        self.redirect_uri = redirect_uri
        self.callback_path = extract_callback_path(redirect_uri)
        self.host = _loopback_host(redirect_uri)
        self.state = ListenerState.IDLE

        self._redirect_port = extract_port_from_redirect_uri(redirect_uri)
        self._requested_port = port if port is not None else (self._redirect_port or 0)
        self._channel = CallbackChannel()
        self._token_cell = TokenCell() if expose_token else None
        self.app = create_callback_app(self.callback_path, self._channel, self._token_cell)

        self._socket: Optional[socket.socket] = None
        self._server: Optional[_LoopbackServer] = None
        self._serve_task: Optional[asyncio.Task[None]] = None

    @property
    def port(self) -> int:
        if self._socket is None:
            raise RuntimeError("listener is not bound")
        return self._socket.getsockname()[1]

    @property
    def effective_redirect_uri(self) -> str:
        """Redirect URI pointing at the bound port."""
        if self._redirect_port == self.port:
            return self.redirect_uri
        return replace_port(self.redirect_uri, self.port)

    @property
    def exposes_token(self) -> bool:
        return self._token_cell is not None

    async def __aenter__(self) -> "CallbackListener":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self._requested_port))
        except OSError as exc:
            sock.close()
            raise CallbackServerError(
                f"Could not bind callback server to {self.host}:{self._requested_port}: {exc}",
                error="bind_failed",
            ) from exc
        sock.set_inheritable(True)
        return sock

    async def start(self) -> None:
        if self.state is not ListenerState.IDLE:
            raise RuntimeError(f"listener cannot start from state {self.state.value}")

        self._socket = self._bind()
        config = uvicorn.Config(
            self.app,
            log_config=None,
            log_level=get_settings().server.log_level,
            access_log=False,
            lifespan="off",
            timeout_graceful_shutdown=2,
        )
        self._server = _LoopbackServer(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[self._socket]))

        try:
            while not self._server.started:
                if self._serve_task.done():
                    raise CallbackServerError("Callback server failed to start", error="server_error")
                await asyncio.sleep(0.01)
        except BaseException:
            # __aexit__ never runs for a failed __aenter__
            await self.stop()
            raise

        self.state = ListenerState.LISTENING
        logger.info(
            "callback server listening",
            extra={"port": self.port, "path": self.callback_path},
        )

    async def wait_for_callback(self, timeout: Optional[float] = None) -> CallbackOutcome:
        """Wait for the first valid redirect, bounded by ``timeout`` seconds."""
        if self.state is not ListenerState.LISTENING or self._serve_task is None:
            raise RuntimeError(f"listener cannot wait from state {self.state.value}")
        if timeout is None:
            timeout = get_settings().flow.callback_timeout

        receive = asyncio.ensure_future(self._channel.receive())
        try:
            done, _ = await asyncio.wait(
                {receive, self._serve_task},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            self.state = ListenerState.CANCELLED
            await self.stop()
            raise FlowCancelled() from None
        finally:
            if not receive.done():
                receive.cancel()

        if receive in done:
            self.state = ListenerState.CALLBACK_RECEIVED
            return receive.result()

        if self._serve_task in done:
            await self.stop()
            raise CallbackServerError("Callback server stopped before a callback arrived", error="server_error")

        self.state = ListenerState.TIMED_OUT
        await self.stop()
        raise AuthTimeout(f"Authentication timeout ({timeout:g} seconds)", error="timeout")

    def publish_token(self, token: TokenResult) -> None:
        """Expose ``token`` on ``/token`` for the page still open in the browser."""
        if self._token_cell is None:
            raise RuntimeError("token hand-off is not enabled for this listener")
        self._token_cell.set(token)

    async def stop(self) -> None:
        if self.state is ListenerState.STOPPED:
            return
        try:
            if self._server is not None:
                self._server.should_exit = True
            if self._serve_task is not None and not self._serve_task.done():
                await self._serve_task
            elif self._serve_task is not None and not self._serve_task.cancelled():
                exc = self._serve_task.exception()
                if exc is not None:
                    logger.warning("callback server exited with an error", exc_info=exc)
        finally:
            if self._socket is not None:
                self._socket.close()
            self.state = ListenerState.STOPPED
            logger.info("callback server stopped")
