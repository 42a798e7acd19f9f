"""MCP stdio host for the command gateway.

Thin registration layer: each tool forwards its arguments to
``shellgate.tools.dispatch``. Error outcomes are raised as ToolError so the
client receives them with the error flag set.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from . import __version__
from .gateway import CommandGateway
from .tools import TOOL_SPECS, ToolReply, dispatch
from .types import DEFAULT_TIMEOUT_MS, CommandOutcome

logger = logging.getLogger(__name__)

SERVER_NAME = "shellgate"


def reply_text(reply: ToolReply) -> str:
    """Convert a dispatch reply into MCP text, raising for error outcomes."""
    if isinstance(reply, CommandOutcome):
        if reply.is_error:
            raise ToolError(reply.render())
        return reply.render()
    return reply


def build_server(gateway: CommandGateway) -> FastMCP:
    server = FastMCP(SERVER_NAME)

    async def call(name: str, **tool_args: Any) -> str:
        reply = await asyncio.to_thread(dispatch, gateway, name, tool_args)
        return reply_text(reply)

    @server.tool(name="execute_command", description=TOOL_SPECS["execute_command"].description)
    async def execute_command(
        command: str,
        timeout: int = DEFAULT_TIMEOUT_MS,
        workingDir: Optional[str] = None,
    ) -> str:
        return await call("execute_command", command=command, timeout=timeout, workingDir=workingDir)

    @server.tool(name="execute_powershell", description=TOOL_SPECS["execute_powershell"].description)
    async def execute_powershell(
        script: str,
        timeout: int = DEFAULT_TIMEOUT_MS,
        workingDir: Optional[str] = None,
    ) -> str:
        return await call("execute_powershell", script=script, timeout=timeout, workingDir=workingDir)

    @server.tool(
        name="list_allowed_commands",
        description=TOOL_SPECS["list_allowed_commands"].description,
    )
    async def list_allowed_commands() -> str:
        return await call("list_allowed_commands")

    logger.debug("Registered %d tools on %s %s", len(TOOL_SPECS), SERVER_NAME, __version__)
    return server


def run_stdio(gateway: CommandGateway) -> None:
    build_server(gateway).run(transport="stdio")
