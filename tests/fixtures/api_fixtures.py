"""
Canned Kubernetes API server for functional tests.
"""

import asyncio
from aiohttp import web


NAMESPACES = {
    "items": [
        {"metadata": {"name": "kube-system"}, "status": {"phase": "Active"}},
        {"metadata": {"name": "default"}, "status": {"phase": "Active"}},
        {"metadata": {"name": "old"}, "status": {"phase": "Terminating"}},
    ]
}

PODS = {
    "items": [
        {
            "metadata": {"name": "worker-b", "creationTimestamp": "2024-01-01T00:00:00Z"},
            "status": {"phase": "Pending"},
        },
        {
            "metadata": {"name": "api-a", "creationTimestamp": "2024-01-01T00:00:00Z"},
            "status": {
                "phase": "Running",
                "containerStatuses": [{"ready": True, "restartCount": 4}],
            },
        },
    ]
}

CHATTY_CHUNKS = [
    b"2024-01-01T10:00:00.000000001Z first line\n2024-01-01T10:00:01.0",
    b"00000001Z second line\n\n",
    b"2024-01-01T10:00:02.000000001Z third line\n",
]


class FakeApiServer:
    """Records requests and serves canned API responses."""

    def __init__(self):
        self.base_url = ""
        self.requests = []
        self.release = asyncio.Event()
        self.app = web.Application()
        self.app.router.add_get("/api/v1/namespaces", self.namespaces)
        self.app.router.add_get("/api/v1/namespaces/{namespace}/pods", self.pods)
        self.app.router.add_get("/api/v1/namespaces/{namespace}/pods/{pod}/log", self.log)

    def requests_for(self, pod: str):
        return [r for r in self.requests if r["pod"] == pod]

    def _record(self, request: web.Request) -> None:
        self.requests.append({
            "path": request.path,
            "pod": request.match_info.get("pod"),
            "query": dict(request.query),
            "authorization": request.headers.get("Authorization"),
        })

    async def namespaces(self, request: web.Request) -> web.Response:
        self._record(request)
        return web.json_response(NAMESPACES)

    async def pods(self, request: web.Request) -> web.Response:
        self._record(request)
        if request.match_info["namespace"] == "forbidden":
            return web.Response(status=403, text="forbidden")
        return web.json_response(PODS)

    async def log(self, request: web.Request) -> web.StreamResponse:
        self._record(request)
        pod = request.match_info["pod"]

        if pod == "missing":
            return web.Response(status=404, text="pods \"missing\" not found")
        if pod == "locked":
            return web.Response(status=401, text="Unauthorized")
        if pod == "broken":
            return web.Response(status=500, text="internal error")
        if pod == "cached":
            return web.Response(status=304)

        if request.query.get("follow") != "true":
            return web.Response(text="2024-01-01T10:00:00Z snapshot one\n\n2024-01-01T10:00:01Z snapshot two\n")

        response = web.StreamResponse(headers={"Content-Type": "text/plain"})
        await response.prepare(request)

        for chunk in CHATTY_CHUNKS:
            await response.write(chunk)
            await asyncio.sleep(0.01)

        if pod == "idle":
            # Hold the stream open until the test ends
            try:
                await asyncio.wait_for(self.release.wait(), timeout=5)
            except asyncio.TimeoutError:
                pass

        return response


