from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from typing import Optional, Union

from oidc_cli.clients.types import TokenResult


@dataclass(frozen=True)
class CallbackSuccess:
    code: str
    state: str


@dataclass(frozen=True)
class CallbackProviderError:
    error: str
    error_description: Optional[str] = None
    state: Optional[str] = None


CallbackOutcome = Union[CallbackSuccess, CallbackProviderError]


class CallbackChannel:
    """Single-shot handoff from the HTTP handler to the waiting flow.

    Only the first outcome offered is enqueued; later offers are refused.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[CallbackOutcome] = asyncio.Queue(maxsize=1)
        self._delivered = False

    @property
    def delivered(self) -> bool:
        return self._delivered

    def offer(self, outcome: CallbackOutcome) -> bool:
        if self._delivered:
            return False
        self._delivered = True
        self._queue.put_nowait(outcome)
        return True

    async def receive(self) -> CallbackOutcome:
        return await self._queue.get()


class TokenCell:
    """Write-once slot holding the token exposed to the browser page."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Optional[TokenResult] = None

    def set(self, value: TokenResult) -> None:
        with self._lock:
            if self._value is not None:
                raise RuntimeError("token already published for this flow")
            self._value = value

    def get(self) -> Optional[TokenResult]:
        with self._lock:
            return self._value
