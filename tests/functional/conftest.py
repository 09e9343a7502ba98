"""
Functional test fixtures: an in-process API server.
"""

import pytest
from aiohttp.test_utils import TestServer

from kubelog.utils.config import ApiConfig
from tests.fixtures.api_fixtures import FakeApiServer


@pytest.fixture
async def api_server():
    fake = FakeApiServer()
    server = TestServer(fake.app)
    await server.start_server()
    fake.base_url = str(server.make_url("")).rstrip("/")
    yield fake
    fake.release.set()
    await server.close()


@pytest.fixture
def server_api_config(api_server) -> ApiConfig:
    return ApiConfig(base_url=api_server.base_url, token="secret-token", connect_timeout=2.0)
