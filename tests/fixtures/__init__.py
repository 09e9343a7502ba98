"""
Test fixtures for kubelog.

Provides log data builders and a scripted stream connector.
"""

from .streaming_fixtures import (
    StreamingFixtures,
    FakeStream,
    FakeConnector,
    ScriptedConnector,
    wait_until,
)

__all__ = [
    "StreamingFixtures",
    "FakeStream",
    "FakeConnector",
    "ScriptedConnector",
    "wait_until",
]
