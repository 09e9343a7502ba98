"""
Viewer-level coordination of log sessions.

Owns the connector and keeps at most one session alive. Every new
(namespace, pod, time filter) selection retires the old session before the
next one starts.
"""

from datetime import datetime
from typing import Optional, List, Tuple, Union, Callable

from .session import LogSession, SessionListener
from ..streaming.backoff import BackoffPolicy
from ..transport.connector import StreamConnector
from ..utils.config import StreamConfig
from ..utils.logging import get_logger


logger = get_logger("kubelog.viewer")

SelectionKey = Tuple[str, str, Optional[int], Optional[Union[str, datetime]]]


class LogViewer:
    """Switches between pod log sessions."""

    def __init__(self, connector: StreamConnector, stream_config: Optional[StreamConfig] = None):
        self.connector = connector
        self.stream_config = stream_config or StreamConfig()
        self._session: Optional[LogSession] = None
        self._selection: Optional[SelectionKey] = None
        self._listeners: List[SessionListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def session(self) -> Optional[LogSession]:
        return self._session

    @property
    def selection(self) -> Optional[SelectionKey]:
        return self._selection

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Listen to the current session and every session selected after it."""
        self._listeners.append(listener)
        if self._session is not None:
            self._attach(self._session)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def select(
        self,
        namespace: str,
        pod: str,
        since_seconds: Optional[int] = None,
        since_time: Optional[Union[str, datetime]] = None
    ) -> Optional[LogSession]:
        """
        Switch to a new selection.

        Re-selecting the current selection keeps the live session. An empty
        namespace or pod leaves the viewer without a session.

        Raises:
            ValidationError: If both time filters are given
        """
        key = (namespace, pod, since_seconds, since_time)
        if self._session is not None and key == self._selection:
            return self._session

        # Validate before tearing the old session down
        session = None
        if namespace and pod:
            session = LogSession(
                namespace,
                pod,
                self.connector,
                since_seconds=since_seconds,
                since_time=since_time,
                backoff=BackoffPolicy.from_config(self.stream_config),
                stream_config=self.stream_config
            )

        await self._retire()
        self._selection = key

        if session is None:
            logger.debug("selection_cleared", namespace=namespace, pod=pod)
            return None

        self._session = session
        self._attach(session)
        logger.info(
            "selection_changed",
            namespace=namespace,
            pod=pod,
            since_seconds=since_seconds,
            since_time=str(since_time) if since_time else None,
            session_id=session.id
        )
        session.start()
        return session

    def _attach(self, session: LogSession) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = session.subscribe(self._dispatch)

    def _dispatch(self, update) -> None:
        for listener in list(self._listeners):
            listener(update)

    async def _retire(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._session is not None:
            session, self._session = self._session, None
            await session.stop()

    async def close(self) -> None:
        """Stop the live session and close the connector."""
        await self._retire()
        self._selection = None
        await self.connector.close()
        logger.debug("viewer_closed")

    async def __aenter__(self) -> "LogViewer":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
