"""Session management for kubelog."""

from .session import (
    LogSession,
    SessionStatus,
    SessionSnapshot,
    SessionUpdate,
    UpdateKind,
    SessionMetrics,
)
from .viewer import LogViewer

__all__ = [
    'LogSession',
    'SessionStatus',
    'SessionSnapshot',
    'SessionUpdate',
    'UpdateKind',
    'SessionMetrics',
    'LogViewer',
]
