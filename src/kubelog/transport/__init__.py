"""HTTP transports for the Kubernetes API"""

from .base import CancellationToken, ConnectionState, wait_or_cancel
from .connector import LogEndpoint, StreamConnector, StreamHandle
from .kube_api import KubeApiClient

__all__ = [
    'CancellationToken',
    'ConnectionState',
    'wait_or_cancel',
    'LogEndpoint',
    'StreamConnector',
    'StreamHandle',
    'KubeApiClient',
]
