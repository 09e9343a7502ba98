"""
Log streaming session for kubelog.

This module manages one live log stream with:
- Connection lifecycle (one connection at a time)
- Chunk-to-line reassembly
- Automatic reconnect with bounded exponential backoff
- Pause, resume, clear, manual retry and export
- Change notification for a presentation layer

All state lives on the event loop thread; only the session mutates it.
"""

import asyncio
import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List, Callable, Tuple, Union
import uuid

from ..export.formatter import ExportOptions, ExportDocument, format_export
from ..streaming.backoff import BackoffPolicy
from ..streaming.reassembler import LineReassembler
from ..transport.base import CancellationToken
from ..transport.connector import LogEndpoint, StreamConnector
from ..utils.config import StreamConfig
from ..utils.errors import KubeLogError, ConnectionError, StreamCancelledError, ExportError
from ..utils.logging import get_logger


logger = get_logger("kubelog.session")


class SessionStatus(Enum):
    """Session lifecycle states."""
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    PAUSED = "paused"
    RETRYING = "retrying"
    FAILED = "failed"
    STOPPED = "stopped"


class UpdateKind(Enum):
    """What changed in a session update."""
    STATUS = "status"
    LINES = "lines"
    CLEARED = "cleared"


@dataclass(frozen=True)
class SessionUpdate:
    """Notification delivered to session listeners."""
    session_id: str
    kind: UpdateKind
    status: SessionStatus
    lines: Tuple[str, ...] = ()
    error: Optional[KubeLogError] = None


@dataclass(frozen=True)
class SessionSnapshot:
    """Point-in-time copy of a session's observable state."""
    session_id: str
    namespace: str
    pod: str
    status: SessionStatus
    lines: Tuple[str, ...]
    retry_count: int
    paused: bool
    last_error: Optional[KubeLogError] = None

    @property
    def is_retrying(self) -> bool:
        return self.status == SessionStatus.RETRYING

    @property
    def is_failed(self) -> bool:
        return self.status == SessionStatus.FAILED


@dataclass
class SessionMetrics:
    """Counters for one session."""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    connection_attempts: int = 0
    failures: int = 0
    retries_scheduled: int = 0
    chunks_received: int = 0
    bytes_received: int = 0
    lines_appended: int = 0
    lines_suppressed: int = 0
    last_chunk_at: Optional[datetime] = None


SessionListener = Callable[[SessionUpdate], Any]


class LogSession:
    """Streams one pod's log for a fixed (namespace, pod, time filter) selection."""

    def __init__(
        self,
        namespace: str,
        pod: str,
        connector: StreamConnector,
        since_seconds: Optional[int] = None,
        since_time: Optional[Union[str, datetime]] = None,
        backoff: Optional[BackoffPolicy] = None,
        reassembler: Optional[LineReassembler] = None,
        stream_config: Optional[StreamConfig] = None
    ):
        """
        Initialize a session. Nothing connects until start().

        Raises:
            ValidationError: If both since_seconds and since_time are given
        """
        stream_config = stream_config or StreamConfig()

        self.id = uuid.uuid4().hex[:12]
        self.namespace = namespace
        self.pod = pod
        self.since_seconds = since_seconds
        self.since_time = since_time

        self._endpoint: Optional[LogEndpoint] = None
        if namespace and pod:
            self._endpoint = LogEndpoint(namespace, pod, since_seconds, since_time)

        self._connector = connector
        self._backoff = backoff or BackoffPolicy.from_config(stream_config)
        self._reassembler = reassembler or LineReassembler(
            encoding=stream_config.encoding,
            errors=stream_config.decode_errors
        )

        self._status = SessionStatus.IDLE
        self._lines: List[str] = []
        self._retry_count = 0
        self._last_error: Optional[KubeLogError] = None
        self._paused = False
        self._stopped = False

        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None
        self._retry_handle: Optional[asyncio.TimerHandle] = None

        self._listeners: List[SessionListener] = []
        self.metrics = SessionMetrics()

    # Observable state

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def last_error(self) -> Optional[KubeLogError]:
        return self._last_error

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def stopped(self) -> bool:
        return self._stopped

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.id,
            namespace=self.namespace,
            pod=self.pod,
            status=self._status,
            lines=tuple(self._lines),
            retry_count=self._retry_count,
            paused=self._paused,
            last_error=self._last_error,
        )

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener for session updates.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Controls

    def start(self) -> None:
        """Begin streaming. Requires a running event loop."""
        if self._endpoint is None:
            logger.debug("session_not_started_no_selection", session_id=self.id)
            return
        if self._status != SessionStatus.IDLE:
            logger.warning("session_already_started", session_id=self.id, status=self._status.value)
            return
        self._connect()

    def pause(self) -> None:
        """Stop appending lines. The connection keeps being drained."""
        self._paused = True
        if self._status == SessionStatus.STREAMING:
            self._set_status(SessionStatus.PAUSED)
        logger.info("session_paused", session_id=self.id)

    def resume(self) -> None:
        """Append lines again. Lines that arrived while paused are gone."""
        self._paused = False
        if self._status == SessionStatus.PAUSED:
            self._set_status(SessionStatus.STREAMING)
        logger.info("session_resumed", session_id=self.id)

    def clear(self) -> None:
        """Empty the buffer and the partial line; status and retries are untouched."""
        self._lines.clear()
        self._reassembler.reset()
        logger.info("session_cleared", session_id=self.id)
        self._notify(UpdateKind.CLEARED)

    def retry(self) -> None:
        """Reset counters and buffer, then reconnect from scratch."""
        logger.info("session_retry_requested", session_id=self.id, status=self._status.value)

        self._stopped = False
        self._retry_count = 0
        self._last_error = None
        self._lines.clear()
        self._reassembler.reset()
        self._notify(UpdateKind.CLEARED)

        if self._endpoint is None:
            return
        self._connect()

    async def stop(self) -> None:
        """
        Tear the session down: cancel the retry timer and the live connection.

        Idempotent. A stopped session reconnects only through retry().
        """
        if self._stopped:
            return
        self._stopped = True

        self._cancel_retry_timer()
        task = self._abort_attempt("session stopped")
        self._set_status(SessionStatus.STOPPED)

        if task is not None and task is not asyncio.current_task():
            await asyncio.wait({task})
        await self._connector.release()

        logger.info(
            "session_stopped",
            session_id=self.id,
            namespace=self.namespace,
            pod=self.pod,
            lines=len(self._lines)
        )

    def export_logs(
        self,
        filename: Optional[str] = None,
        options: Optional[ExportOptions] = None
    ) -> ExportDocument:
        """
        Export the buffered lines. Never touches the live stream.

        Raises:
            ExportError: If the buffer is empty
        """
        options = options or ExportOptions()
        if filename:
            options = dataclasses.replace(options, filename=filename)

        try:
            return format_export(list(self._lines), self.namespace, self.pod, options)
        except ExportError:
            logger.warning("export_without_lines", session_id=self.id)
            raise

    # Connection lifecycle

    def _connect(self) -> None:
        self._cancel_retry_timer()
        previous = self._abort_attempt("reconnecting")

        token = CancellationToken()
        self._token = token
        self._set_status(SessionStatus.CONNECTING)

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(
            self._run_attempt(token, previous),
            name=f"kubelog-stream-{self.id}"
        )

    def _abort_attempt(self, reason: str) -> Optional[asyncio.Task]:
        token, task = self._token, self._task
        if token is not None:
            token.cancel(reason)
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        return task

    def _cancel_retry_timer(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    async def _run_attempt(self, token: CancellationToken, previous: Optional[asyncio.Task]) -> None:
        # The old attempt must have released its connection first
        if previous is not None and not previous.done() and previous is not asyncio.current_task():
            await asyncio.wait({previous})
        if token.cancelled:
            return

        self._reassembler.reset()
        self.metrics.connection_attempts += 1
        logger.info(
            "stream_attempt",
            session_id=self.id,
            namespace=self.namespace,
            pod=self.pod,
            retry_count=self._retry_count
        )

        try:
            handle = await self._connector.open(self._endpoint, token)
            first_chunk = True
            async with handle:
                async for chunk in handle.iter_chunks():
                    if token.cancelled:
                        break
                    if first_chunk:
                        first_chunk = False
                        self._on_stream_started(token)
                    self._consume(chunk, token)
        except StreamCancelledError:
            logger.debug("stream_attempt_cancelled", session_id=self.id, reason=token.reason)
            return
        except KubeLogError as e:
            self._handle_failure(e, token)
            return
        except Exception as e:
            logger.error("stream_unexpected_error", session_id=self.id, error=str(e), exc_info=True)
            self._handle_failure(ConnectionError(str(e), cause=e), token)
            return
        finally:
            self._reassembler.close()

        self._on_stream_ended(token)

    def _on_stream_started(self, token: CancellationToken) -> None:
        if token is not self._token:
            return
        self._retry_count = 0
        self._last_error = None
        self._set_status(SessionStatus.PAUSED if self._paused else SessionStatus.STREAMING)

    def _consume(self, chunk: bytes, token: CancellationToken) -> None:
        self.metrics.chunks_received += 1
        self.metrics.bytes_received += len(chunk)
        self.metrics.last_chunk_at = datetime.now(timezone.utc)

        new_lines = list(self._reassembler.feed(chunk))
        if not new_lines or token.cancelled:
            return

        if self._paused:
            self.metrics.lines_suppressed += len(new_lines)
            return

        self._lines.extend(new_lines)
        self.metrics.lines_appended += len(new_lines)
        self._notify(UpdateKind.LINES, tuple(new_lines))

    def _on_stream_ended(self, token: CancellationToken) -> None:
        if self._stopped or token.cancelled or token is not self._token:
            return
        logger.info("stream_closed_by_server", session_id=self.id, lines=len(self._lines))
        self._set_status(SessionStatus.STOPPED)

    def _handle_failure(self, error: KubeLogError, token: CancellationToken) -> None:
        # A stopped or superseded session must never schedule another connection
        if self._stopped or token.cancelled or token is not self._token:
            logger.debug(
                "failure_after_teardown_ignored",
                session_id=self.id,
                error=str(error)
            )
            return

        self._last_error = error
        self.metrics.failures += 1

        if self._backoff.should_retry(self._retry_count):
            attempt = self._retry_count + 1
            delay = self._backoff.delay(attempt)
            self._retry_count = attempt
            self.metrics.retries_scheduled += 1

            logger.warning(
                "stream_retry_scheduled",
                session_id=self.id,
                attempt=attempt,
                max_retries=self._backoff.max_retries,
                delay=delay,
                error=str(error)
            )
            loop = asyncio.get_running_loop()
            self._retry_handle = loop.call_later(delay, self._on_retry_timer)
            self._set_status(SessionStatus.RETRYING)
        else:
            logger.error(
                "stream_failed",
                session_id=self.id,
                attempts=self._retry_count,
                error=str(error),
                error_code=error.code
            )
            self._set_status(SessionStatus.FAILED)

    def _on_retry_timer(self) -> None:
        self._retry_handle = None
        if self._stopped:
            return
        self._connect()

    # Notification

    def _set_status(self, status: SessionStatus) -> None:
        if status == self._status:
            return
        previous = self._status
        self._status = status
        logger.debug(
            "session_status_changed",
            session_id=self.id,
            previous=previous.value,
            status=status.value
        )
        self._notify(UpdateKind.STATUS)

    def _notify(self, kind: UpdateKind, lines: Tuple[str, ...] = ()) -> None:
        if not self._listeners:
            return
        update = SessionUpdate(
            session_id=self.id,
            kind=kind,
            status=self._status,
            lines=lines,
            error=self._last_error,
        )
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception as e:
                logger.error(
                    "listener_error",
                    session_id=self.id,
                    error=str(e),
                    exc_info=True
                )

    def get_stats(self) -> Dict[str, Any]:
        """Get session statistics."""
        return {
            "session_id": self.id,
            "namespace": self.namespace,
            "pod": self.pod,
            "status": self._status.value,
            "line_count": len(self._lines),
            "retry_count": self._retry_count,
            "paused": self._paused,
            "connection_attempts": self.metrics.connection_attempts,
            "failures": self.metrics.failures,
            "retries_scheduled": self.metrics.retries_scheduled,
            "chunks_received": self.metrics.chunks_received,
            "bytes_received": self.metrics.bytes_received,
            "lines_appended": self.metrics.lines_appended,
            "lines_suppressed": self.metrics.lines_suppressed,
            "reassembler": self._reassembler.get_stats(),
        }

    def __repr__(self) -> str:
        return f"LogSession({self.namespace}/{self.pod}, status={self._status.value})"


__all__ = [
    'LogSession',
    'SessionStatus',
    'SessionSnapshot',
    'SessionUpdate',
    'UpdateKind',
    'SessionMetrics',
]
