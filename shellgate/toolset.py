"""Command gateway as a PydanticAI toolset.

GatewayToolset exposes every tool in ``shellgate.tools.TOOL_SPECS`` to an
agent. Authorisation happens inside the gateway, so no approval wrapper is
needed for the guard to apply: a denied command comes back as an error
outcome the model can read.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, cast

from pydantic_ai.tools import ToolDefinition
from pydantic_ai.toolsets import AbstractToolset, ToolsetTool
from pydantic_ai.toolsets.abstract import SchemaValidatorProt

from .gateway import CommandGateway
from .tools import TOOL_SPECS, ToolReply, ToolSpec, dispatch

logger = logging.getLogger(__name__)


class ToolArgsValidator:
    """Checks arguments against a tool's args model and hands ``dispatch`` a dict."""

    def __init__(self, spec: ToolSpec) -> None:
        self.spec = spec
        self._validator = spec.args_model.__pydantic_validator__

    def validate_python(self, input: Any, **kwargs: Any) -> dict[str, Any]:
        return self._validator.validate_python(input, **kwargs).model_dump()

    def validate_json(self, input: Any, **kwargs: Any) -> dict[str, Any]:
        return self._validator.validate_json(input, **kwargs).model_dump()

    def validate_strings(self, input: Any, **kwargs: Any) -> dict[str, Any]:
        return self._validator.validate_strings(input, **kwargs).model_dump()


class GatewayToolset(AbstractToolset[Any]):
    """Toolset exposing execute_command, execute_powershell and list_allowed_commands."""

    def __init__(
        self,
        gateway: CommandGateway,
        id: Optional[str] = None,
        max_retries: int = 1,
    ):
        self._gateway = gateway
        self._id = id
        self._max_retries = max_retries

    @property
    def id(self) -> str | None:
        """Return toolset ID for durable execution."""
        return self._id

    @property
    def gateway(self) -> CommandGateway:
        return self._gateway

    async def get_tools(self, ctx: Any) -> dict[str, ToolsetTool]:
        """Return one tool definition per registered tool spec."""
        return {
            name: ToolsetTool(
                toolset=self,
                tool_def=ToolDefinition(
                    name=name,
                    description=spec.description,
                    parameters_json_schema=spec.args_model.model_json_schema(),
                ),
                max_retries=self._max_retries,
                args_validator=cast(SchemaValidatorProt, ToolArgsValidator(spec)),
            )
            for name, spec in TOOL_SPECS.items()
        }

    async def call_tool(
        self,
        name: str,
        tool_args: dict[str, Any],
        ctx: Any,
        tool: ToolsetTool[Any],
    ) -> ToolReply:
        """Run the tool in a worker thread so concurrent calls don't block the loop."""
        logger.debug("Tool call %s(%s)", name, tool_args)
        return await asyncio.to_thread(dispatch, self._gateway, name, tool_args)
