"""Cancellation primitives shared by the HTTP transports."""

import asyncio
import enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from ..utils.config import ApiConfig
from ..utils.errors import StreamCancelledError

T = TypeVar('T')


class ConnectionState(enum.Enum):
    """Connection state of a stream handle"""
    OPEN = "open"
    CLOSED = "closed"


class CancellationToken:
    """One-shot cancellation signal for a single connection attempt"""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


async def wait_or_cancel(
    awaitable: Awaitable[T],
    token: CancellationToken,
    discard: Optional[Callable[[Any], None]] = None
) -> T:
    """Await ``awaitable`` unless ``token`` fires first.

    Cancellation wins ties. If the awaitable completed anyway, its result is
    handed to ``discard`` so resources such as responses are not leaked.

    Raises:
        StreamCancelledError: If the token was cancelled before completion
    """
    if token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise StreamCancelledError(token.reason)

    work = asyncio.ensure_future(awaitable)
    cancel = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({work, cancel}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        cancel.cancel()
        if not work.done():
            work.cancel()
            await asyncio.wait({work})

    if token.cancelled:
        if not work.cancelled() and work.exception() is None and discard is not None:
            discard(work.result())
        raise StreamCancelledError(token.reason)

    return work.result()


def default_headers(config: ApiConfig) -> Dict[str, str]:
    """Headers sent with every API request"""
    headers = {"Accept": "text/plain, application/json"}
    if config.token:
        headers["Authorization"] = f"Bearer {config.token}"
    headers.update(config.headers)
    return headers
