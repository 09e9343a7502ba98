"""
Pytest configuration and shared fixtures for kubelog tests.
"""

import pytest
from pathlib import Path
from typing import Dict

from kubelog.utils.logging import setup_logging

from tests.fixtures import FakeConnector


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Route structlog through stdlib logging once for the test run."""
    setup_logging(log_level="DEBUG", enable_file=False, enable_json=False)


@pytest.fixture
def clean_env() -> Dict[str, str]:
    """An environment mapping without KUBELOG_ variables."""
    return {}


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def export_dir(tmp_path: Path) -> Path:
    return tmp_path / "exports"
