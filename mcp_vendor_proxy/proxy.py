"""Protocol front: the two MCP operations and the two-phase tool call."""

import json
import logging
from typing import Any, Dict, List, Optional

from mcp import types
from pydantic import ValidationError

from .errors import VendorExecutionError
from .orchestrator.client import OrchestratorClient
from .schemas import VendorInstruction
from .vendor.dispatcher import VendorDispatcher

logger = logging.getLogger(__name__)


def render_result(result: Any) -> str:
    """Text shown to the caller for an orchestrator ``result``."""
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2, default=str)


def text_result(text: str, is_error: bool = False) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)], isError=is_error
    )


class ProxyFront:
    """Answers ``list_tools`` and ``call_tool`` on behalf of the orchestrator.

    A tool call is dispatched remotely first. If the answer carries vendor
    instructions they are executed locally, in order, and their outcomes
    are submitted back; the caller sees the orchestrator's final result.
    """

    def __init__(
        self,
        client: OrchestratorClient,
        dispatcher: VendorDispatcher,
        server_name: str,
        server_args: Optional[Dict[str, Any]] = None,
    ):
        self.client = client
        self.dispatcher = dispatcher
        self.server_name = server_name
        self.server_args = dict(server_args or {})

    async def list_tools(self) -> List[types.Tool]:
        envelope = await self.client.list_tools(self.server_name, self.server_args)
        if not envelope.success:
            logger.warning(f"Listing tools failed, exposing none: {envelope.error}")
            return []

        tools = [
            types.Tool(
                name=descriptor.name,
                description=descriptor.description,
                inputSchema=descriptor.input_schema,
            )
            for descriptor in envelope.tools or []
        ]
        logger.info(f"Exposing {len(tools)} tools for {self.server_name}")
        return tools

    async def call_tool(
        self, name: str, arguments: Optional[Dict[str, Any]]
    ) -> types.CallToolResult:
        tool_args = dict(arguments or {})
        logger.info(f"Calling tool {name}")
        try:
            return await self._call_tool(name, tool_args)
        except Exception as e:
            logger.exception(f"Unexpected error while calling tool {name}")
            return text_result(f"Error: {e}", is_error=True)

    async def _call_tool(self, name: str, tool_args: Dict[str, Any]) -> types.CallToolResult:
        envelope = await self.client.call_tool(
            self.server_name, self.server_args, name, tool_args
        )
        if not envelope.success:
            return text_result(f"Error: {envelope.error}", is_error=True)

        if not envelope.vendor_instructions:
            return text_result(render_result(envelope.result))

        outcomes = await self.execute_instructions(envelope.vendor_instructions)

        final = await self.client.submit_vendor_results(
            self.server_name, self.server_args, name, tool_args, outcomes
        )
        if not final.success:
            return text_result(
                f"Error processing vendor results: {final.error}", is_error=True
            )
        return text_result(render_result(final.result))

    async def execute_instructions(self, raw_instructions: List[Any]) -> List[Any]:
        """Run instructions strictly in order, one outcome per instruction.

        A failing instruction yields ``{"error": <message>}`` and the rest
        still run.
        """
        logger.info(f"Executing {len(raw_instructions)} vendor instruction(s)")
        outcomes: List[Any] = []
        for index, raw in enumerate(raw_instructions):
            try:
                instruction = VendorInstruction.model_validate(raw)
                outcomes.append(await self.dispatcher.execute(instruction))
            except ValidationError as e:
                logger.error(f"Vendor instruction {index} is malformed: {e}")
                outcomes.append({"error": f"Invalid vendor instruction: {e}"})
            except VendorExecutionError as e:
                logger.error(f"Vendor instruction {index} failed: {e.message}")
                outcomes.append({"error": e.message})
        return outcomes

