"""
kubelog - live Kubernetes pod log streaming.

Follows a pod's log over the API server's chunked log endpoint, reassembles
lines, reconnects with bounded backoff and exports what was captured.
"""

__version__ = "0.1.0"
__author__ = "kubelog contributors"

from .managers.session import LogSession, SessionStatus, SessionSnapshot, SessionUpdate
from .managers.viewer import LogViewer
from .transport.connector import StreamConnector, LogEndpoint
from .transport.kube_api import KubeApiClient
from .export.formatter import ExportOptions, ExportDocument, format_export
from .utils.config import KubeLogConfig, load_config
from .utils.errors import KubeLogError

__all__ = [
    "LogSession",
    "SessionStatus",
    "SessionSnapshot",
    "SessionUpdate",
    "LogViewer",
    "StreamConnector",
    "LogEndpoint",
    "KubeApiClient",
    "ExportOptions",
    "ExportDocument",
    "format_export",
    "KubeLogConfig",
    "load_config",
    "KubeLogError",
]
