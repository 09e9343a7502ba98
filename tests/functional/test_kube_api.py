"""
Functional tests for namespace and pod discovery.
"""

import pytest
from datetime import datetime, timezone

from kubelog.transport.kube_api import KubeApiClient
from kubelog.utils.config import ApiConfig
from kubelog.utils.errors import AuthorizationError, ConnectionError, HttpStatusError


class TestKubeApiClient:
    """Test discovery requests."""

    @pytest.mark.asyncio
    async def test_list_namespaces(self, server_api_config):
        async with KubeApiClient(server_api_config) as client:
            names = await client.list_namespaces()

        assert names == ["default", "kube-system"]

    @pytest.mark.asyncio
    async def test_list_pods_sorted(self, server_api_config):
        now = datetime(2024, 1, 3, tzinfo=timezone.utc)
        async with KubeApiClient(server_api_config) as client:
            pods = await client.list_pods("default", now=now)

        assert [p.name for p in pods] == ["api-a", "worker-b"]
        assert pods[0].restarts == 4
        assert pods[0].age == "2d"

    @pytest.mark.asyncio
    async def test_forbidden(self, server_api_config):
        async with KubeApiClient(server_api_config) as client:
            with pytest.raises(AuthorizationError):
                await client.list_pods("forbidden")

    @pytest.mark.asyncio
    async def test_fetch_logs(self, server_api_config, api_server):
        async with KubeApiClient(server_api_config) as client:
            lines = await client.fetch_logs("default", "chatty", tail_lines=50)

        assert lines == [
            "2024-01-01T10:00:00Z snapshot one",
            "2024-01-01T10:00:01Z snapshot two",
        ]
        assert api_server.requests[-1]["query"] == {"timestamps": "true", "tailLines": "50"}
        assert api_server.requests[-1]["authorization"] == "Bearer secret-token"

    @pytest.mark.asyncio
    async def test_network_error(self):
        async with KubeApiClient(ApiConfig(base_url="http://127.0.0.1:1")) as client:
            with pytest.raises(ConnectionError) as exc_info:
                await client.list_namespaces()

        assert str(exc_info.value) == "Network error. Please check your connection."

    @pytest.mark.asyncio
    async def test_non_success_status(self, server_api_config):
        async with KubeApiClient(server_api_config) as client:
            with pytest.raises(HttpStatusError) as exc_info:
                await client.fetch_logs("default", "cached")

        assert exc_info.value.status == 304

    @pytest.mark.asyncio
    async def test_path_segments_are_quoted(self, server_api_config, api_server):
        """Reserved characters in names stay inside their path segment."""
        async with KubeApiClient(server_api_config) as client:
            lines = await client.fetch_logs("default", "web?1", tail_lines=5)

        assert len(lines) == 2
        request = api_server.requests[-1]
        assert request["pod"] == "web?1"
        assert request["query"] == {"timestamps": "true", "tailLines": "5"}
