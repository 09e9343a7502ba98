"""Log stream processing: line reassembly and reconnect backoff."""

from .reassembler import LineReassembler
from .backoff import BackoffPolicy

__all__ = ["LineReassembler", "BackoffPolicy"]
