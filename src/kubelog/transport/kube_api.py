"""Kubernetes API client for namespace and pod discovery

Thin request/response wrapper used by pickers; log streaming itself lives in
``connector``.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from .base import default_headers
from ..models.pod import PodSummary
from ..utils.config import ApiConfig
from ..utils.errors import ConnectionError, http_error_for_status
from ..utils.logging import get_logger

logger = get_logger(__name__)


class KubeApiClient:
    """Read-only discovery queries against the API server"""

    def __init__(self, config: ApiConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self._session = session
        self._owns_session = session is None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=default_headers(self.config),
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout)
            )
            self._owns_session = True
        return self._session

    async def _get(self, path: str, params: Optional[Dict[str, str]] = None, as_json: bool = True) -> Any:
        session = self._ensure_session()
        url = f"{self.config.base_url}{path}"
        logger.debug("api_request", method="GET", url=url, params=params)

        try:
            async with session.get(url, params=params, ssl=self.config.verify_ssl) as response:
                if not 200 <= response.status < 300:
                    body = await response.text()
                    logger.error("api_error", url=url, status=response.status, body=body[:500])
                    raise http_error_for_status(response.status, response.reason)
                if as_json:
                    return await response.json(content_type=None)
                return await response.text()
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            logger.error("api_network_error", url=url, error=str(e))
            raise ConnectionError(
                "Network error. Please check your connection.", cause=e
            ) from e

    async def list_namespaces(self) -> List[str]:
        """Names of all Active namespaces, sorted"""
        data = await self._get("/api/v1/namespaces")
        names = [
            item["metadata"]["name"]
            for item in data.get("items", [])
            if (item.get("status") or {}).get("phase") == "Active"
        ]
        return sorted(names)

    async def list_pods(self, namespace: str, now: Optional[datetime] = None) -> List[PodSummary]:
        """Pod summaries in ``namespace``, sorted by name"""
        data = await self._get(f"/api/v1/namespaces/{quote(namespace, safe='')}/pods")
        pods = [PodSummary.from_api(item, now=now) for item in data.get("items", [])]
        return sorted(pods, key=lambda p: p.name)

    async def fetch_logs(self, namespace: str, pod: str, tail_lines: int = 100) -> List[str]:
        """One-shot snapshot of the last ``tail_lines`` lines, with timestamps"""
        text = await self._get(
            f"/api/v1/namespaces/{quote(namespace, safe='')}/pods/{quote(pod, safe='')}/log",
            params={"timestamps": "true", "tailLines": str(tail_lines)},
            as_json=False
        )
        return [line for line in text.split("\n") if line.strip()]

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "KubeApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
