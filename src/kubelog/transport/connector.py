"""Streaming log connector for the pod log endpoint

Opens one ``follow=true`` request at a time and exposes the response body as
an async iterator of byte chunks. Every wait for the next chunk races against
the attempt's cancellation token, so tearing a session down unblocks an idle
stream immediately.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Optional, Union
from urllib.parse import quote

import aiohttp

from .base import CancellationToken, ConnectionState, default_headers, wait_or_cancel
from ..utils.config import ApiConfig
from ..utils.errors import (
    ConnectionError, StreamCancelledError, ValidationError, http_error_for_status
)
from ..utils.logging import get_logger

logger = get_logger(__name__)

_NETWORK_ERRORS = (aiohttp.ClientError, OSError, asyncio.TimeoutError)


def format_rfc3339(value: datetime) -> str:
    """Render a datetime as RFC3339 UTC with a ``Z`` suffix"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class LogEndpoint:
    """Address of one pod's log stream plus its time filter"""
    namespace: str
    pod: str
    since_seconds: Optional[int] = None
    since_time: Optional[Union[str, datetime]] = None

    def __post_init__(self):
        if not self.namespace:
            raise ValidationError("namespace", self.namespace, "must not be empty")
        if not self.pod:
            raise ValidationError("pod", self.pod, "must not be empty")
        if self.since_seconds is not None and self.since_time is not None:
            raise ValidationError(
                "since_seconds", self.since_seconds,
                "sinceSeconds and sinceTime are mutually exclusive"
            )
        if self.since_seconds is not None and self.since_seconds <= 0:
            raise ValidationError("since_seconds", self.since_seconds, "must be positive")

    @property
    def path(self) -> str:
        return (
            f"/api/v1/namespaces/{quote(self.namespace, safe='')}"
            f"/pods/{quote(self.pod, safe='')}/log"
        )

    def query(self) -> Dict[str, str]:
        params = {"follow": "true", "timestamps": "true"}
        if self.since_seconds is not None:
            params["sinceSeconds"] = str(int(self.since_seconds))
        elif self.since_time is not None:
            since = self.since_time
            params["sinceTime"] = format_rfc3339(since) if isinstance(since, datetime) else since
        return params


class StreamHandle:
    """One open log response; yields raw byte chunks until EOF or cancellation"""

    def __init__(
        self,
        response: aiohttp.ClientResponse,
        token: CancellationToken,
        endpoint: LogEndpoint
    ):
        self._response = response
        self.token = token
        self.endpoint = endpoint
        self.state = ConnectionState.OPEN
        self.bytes_read = 0

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        """Yield chunks as they arrive

        Raises:
            StreamCancelledError: The token fired; the response is already closed
            ConnectionError: The connection dropped mid-stream
        """
        try:
            while True:
                chunk = await self._next_chunk()
                if not chunk:
                    logger.info(
                        "stream_ended",
                        namespace=self.endpoint.namespace,
                        pod=self.endpoint.pod,
                        bytes_read=self.bytes_read
                    )
                    return
                self.bytes_read += len(chunk)
                yield chunk
        finally:
            await self.close()

    async def _next_chunk(self) -> bytes:
        if self.closed:
            raise StreamCancelledError("stream handle closed")
        try:
            return await wait_or_cancel(self._response.content.readany(), self.token)
        except StreamCancelledError:
            raise
        except _NETWORK_ERRORS as e:
            raise ConnectionError(f"Log stream interrupted: {e}", cause=e) from e

    async def close(self) -> None:
        """Drop the underlying connection; safe to call more than once"""
        if self.closed:
            return
        self.state = ConnectionState.CLOSED
        # close(), not release(): a follow response never drains
        self._response.close()

    async def __aenter__(self) -> "StreamHandle":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return (
            f"StreamHandle({self.endpoint.namespace}/{self.endpoint.pod}, "
            f"state={self.state.value})"
        )


class StreamConnector:
    """Opens log streams; at most one handle is live at any time"""

    def __init__(self, config: ApiConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self._session = session
        self._owns_session = session is None
        self._active: Optional[StreamHandle] = None
        self._stats = {
            "attempts": 0,
            "connected": 0,
            "failures": 0,
            "cancelled": 0,
        }

    @property
    def active(self) -> Optional[StreamHandle]:
        if self._active is not None and self._active.closed:
            self._active = None
        return self._active

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(
                total=None,
                connect=self.config.connect_timeout,
                sock_connect=self.config.connect_timeout,
                sock_read=None
            )
            self._session = aiohttp.ClientSession(
                headers=default_headers(self.config),
                timeout=timeout
            )
            self._owns_session = True
        return self._session

    async def _request(self, session: aiohttp.ClientSession, url: str, endpoint: LogEndpoint):
        return await session.get(
            url,
            params=endpoint.query(),
            headers={"Accept": "text/plain"},
            ssl=self.config.verify_ssl
        )

    async def open(self, endpoint: LogEndpoint, token: CancellationToken) -> StreamHandle:
        """Open a follow stream for ``endpoint``

        Any previously opened handle is closed first.

        Raises:
            StreamCancelledError: ``token`` fired before the response arrived
            HttpStatusError: The server answered with a non-2xx status
            ConnectionError: DNS, refused connection or connect timeout
        """
        await self.release()

        session = self._ensure_session()
        url = f"{self.config.base_url}{endpoint.path}"
        self._stats["attempts"] += 1
        logger.debug("stream_connecting", url=url, params=endpoint.query())

        try:
            response = await wait_or_cancel(
                self._request(session, url, endpoint),
                token,
                discard=lambda r: r.close()
            )
        except StreamCancelledError:
            self._stats["cancelled"] += 1
            raise
        except _NETWORK_ERRORS as e:
            self._stats["failures"] += 1
            logger.warning("stream_connect_failed", url=url, error=str(e))
            raise ConnectionError(f"Failed to connect to {url}: {e}", cause=e) from e

        if not 200 <= response.status < 300:
            self._stats["failures"] += 1
            reason = response.reason
            response.close()
            logger.warning("stream_http_error", url=url, status=response.status, reason=reason)
            raise http_error_for_status(response.status, reason)

        handle = StreamHandle(response, token, endpoint)
        self._active = handle
        self._stats["connected"] += 1
        logger.info(
            "stream_connected",
            namespace=endpoint.namespace,
            pod=endpoint.pod,
            status=response.status
        )
        return handle

    async def release(self) -> None:
        """Close the live handle, if any"""
        if self._active is not None:
            await self._active.close()
            self._active = None

    async def close(self) -> None:
        """Close the live handle and the HTTP session this connector created"""
        await self.release()
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)


__all__ = [
    'LogEndpoint',
    'StreamHandle',
    'StreamConnector',
    'format_rfc3339',
]
