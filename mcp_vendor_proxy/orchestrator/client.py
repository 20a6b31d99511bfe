"""Client for the remote orchestration service."""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..errors import TransportError
from ..schemas import ResponseEnvelope

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class OrchestratorClient:
    """Carries tool requests and vendor results to the orchestrator.

    Every public call returns a ``ResponseEnvelope``; an unreachable
    service, a timeout or a non-2xx answer all come back as
    ``success=False`` with a readable ``error``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
            event_hooks={
                "request": [self._log_request],
                "response": [self._log_response],
            },
        )

    async def __aenter__(self) -> "OrchestratorClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    async def _log_request(request: httpx.Request) -> None:
        logger.debug(f"→ {request.method} {request.url.path}")

    @staticmethod
    async def _log_response(response: httpx.Response) -> None:
        path = response.request.url.path
        if response.is_success:
            logger.debug(f"← {response.status_code} {path}")
        else:
            logger.warning(f"← {response.status_code} {path}: {response.reason_phrase}")

    async def list_tools(
        self, server_name: str, server_args: Dict[str, Any]
    ) -> ResponseEnvelope:
        """Get the tools the orchestrator exposes for a resource."""
        return await self._post(
            "/tools/list",
            {"serverName": server_name, "serverArgs": server_args},
            "listing tools",
        )

    async def call_tool(
        self,
        server_name: str,
        server_args: Dict[str, Any],
        tool_name: str,
        tool_args: Dict[str, Any],
    ) -> ResponseEnvelope:
        """Invoke a tool; the answer may carry vendor instructions."""
        return await self._post(
            "/tools/call",
            {
                "serverName": server_name,
                "serverArgs": server_args,
                "toolName": tool_name,
                "toolArgs": tool_args,
            },
            "calling tool",
        )

    async def submit_vendor_results(
        self,
        server_name: str,
        server_args: Dict[str, Any],
        tool_name: str,
        tool_args: Dict[str, Any],
        vendor_results: List[Any],
    ) -> ResponseEnvelope:
        """Send vendor instruction outcomes back for final processing."""
        return await self._post(
            "/vendor/results",
            {
                "serverName": server_name,
                "serverArgs": server_args,
                "toolName": tool_name,
                "toolArgs": tool_args,
                "vendorResults": vendor_results,
            },
            "processing vendor results",
        )

    async def health_check(self) -> bool:
        try:
            response = await self._client.get("/health")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"Health check failed: {e}")
            return False

    async def _post(
        self, path: str, payload: Dict[str, Any], action: str
    ) -> ResponseEnvelope:
        try:
            data = await self._send(path, payload)
        except TransportError as e:
            logger.error(f"Error {action}: {e}")
            return ResponseEnvelope.failure(e.message)

        try:
            return ResponseEnvelope.model_validate(data)
        except ValidationError as e:
            logger.error(f"Error {action}: invalid envelope from {path}: {e}")
            return ResponseEnvelope.failure(f"Invalid response from orchestrator: {e}")

    async def _send(self, path: str, payload: Dict[str, Any]) -> Any:
        """POST ``payload`` and return the decoded JSON body.

        Raises:
            TransportError: for connection failures, timeouts, non-2xx
                statuses and undecodable bodies
        """
        try:
            response = await self._client.post(path, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise TransportError(
                f"HTTP {status}: {e.response.reason_phrase}", status_code=status
            ) from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__) from e

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid response from orchestrator: {e}") from e
