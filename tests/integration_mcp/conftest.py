"""
Configuration for MCP integration tests.

The MCP server is driven through an in-memory client session; the
orchestrator is an ``httpx.MockTransport`` and local resources are the
shared fakes from the top-level conftest.
"""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from mcp_vendor_proxy.orchestrator.client import OrchestratorClient
from mcp_vendor_proxy.proxy import ProxyFront
from mcp_vendor_proxy.server import build_server

RESOURCE = "mongodb-mcp-server"

Route = Callable[[Dict[str, Any]], Dict[str, Any]]


class FakeOrchestrator:
    """Routes orchestrator paths to per-test handlers and records bodies."""

    def __init__(self):
        self.routes: Dict[str, Route] = {
            "/tools/list": lambda body: {"success": True, "tools": []},
        }
        self.requests: List[tuple] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        self.requests.append((request.url.path, body))
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404)
        return httpx.Response(200, json=route(body))

    def bodies(self, path: str) -> List[Dict[str, Any]]:
        return [body for seen_path, body in self.requests if seen_path == path]


@pytest.fixture
def orchestrator():
    return FakeOrchestrator()


@pytest.fixture
def mcp_server(orchestrator, dispatcher):
    """Low-level MCP server wired to the fake orchestrator."""
    client = OrchestratorClient(
        "http://orchestrator.test", transport=httpx.MockTransport(orchestrator.handle)
    )
    front = ProxyFront(client, dispatcher, RESOURCE, {"readOnly": False})
    return build_server(front)
