"""Tool registry: maps tool names to gateway calls.

Hosts (the pydantic-ai toolset, the MCP server) describe and dispatch tools
through this table rather than wiring the gateway themselves.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from .gateway import CommandGateway
from .types import DEFAULT_TIMEOUT_MS, MAX_TIMEOUT_MS, CommandOutcome, CommandRequest


class ExecuteCommandArgs(BaseModel):
    """Arguments for execute_command."""

    model_config = ConfigDict(populate_by_name=True)

    command: str = Field(description="The command to execute")
    timeout: int = Field(
        default=DEFAULT_TIMEOUT_MS,
        gt=0,
        description=f"Timeout in milliseconds (default {DEFAULT_TIMEOUT_MS}, max {MAX_TIMEOUT_MS})",
    )
    working_dir: Optional[str] = Field(
        default=None,
        alias="workingDir",
        description="Working directory for the command",
    )


class ExecutePowershellArgs(BaseModel):
    """Arguments for execute_powershell."""

    model_config = ConfigDict(populate_by_name=True)

    script: str = Field(description="PowerShell script to execute")
    timeout: int = Field(
        default=DEFAULT_TIMEOUT_MS,
        gt=0,
        description=f"Timeout in milliseconds (default {DEFAULT_TIMEOUT_MS}, max {MAX_TIMEOUT_MS})",
    )
    working_dir: Optional[str] = Field(
        default=None,
        alias="workingDir",
        description="Working directory for the script",
    )


class NoArgs(BaseModel):
    """No arguments."""


ToolReply = Union[CommandOutcome, str]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_model: Type[BaseModel]
    handler: Callable[[CommandGateway, Any], ToolReply]


def _execute_command(gateway: CommandGateway, args: ExecuteCommandArgs) -> CommandOutcome:
    return gateway.execute(
        CommandRequest(
            command=args.command,
            timeout_ms=args.timeout,
            working_dir=args.working_dir,
        )
    )


def _execute_powershell(gateway: CommandGateway, args: ExecutePowershellArgs) -> CommandOutcome:
    return gateway.execute(
        CommandRequest(
            command="powershell",
            script=args.script,
            timeout_ms=args.timeout,
            working_dir=args.working_dir,
        )
    )


def _list_allowed_commands(gateway: CommandGateway, args: NoArgs) -> str:
    return gateway.list_allowed_commands()


TOOL_SPECS: Dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            name="execute_command",
            description=(
                "Execute a Windows command and return its output. Only commands in "
                "the allowed list can be executed. Use this for simple commands "
                "like 'dir' or 'echo'."
            ),
            args_model=ExecuteCommandArgs,
            handler=_execute_command,
        ),
        ToolSpec(
            name="execute_powershell",
            description=(
                "Execute a PowerShell script and return its output. This allows for "
                "more complex operations. PowerShell must be in the allowed commands list."
            ),
            args_model=ExecutePowershellArgs,
            handler=_execute_powershell,
        ),
        ToolSpec(
            name="list_allowed_commands",
            description=(
                "List all commands that are allowed to be executed by this server. "
                "This helps understand what operations are permitted."
            ),
            args_model=NoArgs,
            handler=_list_allowed_commands,
        ),
    )
}


def dispatch(gateway: CommandGateway, name: str, tool_args: dict[str, Any]) -> ToolReply:
    """Validate ``tool_args`` for tool ``name`` and run it.

    Raises:
        KeyError: If no tool is registered under ``name``
        pydantic.ValidationError: If the arguments do not fit the schema
    """
    spec = TOOL_SPECS.get(name)
    if spec is None:
        raise KeyError(f"Unknown tool: {name}")
    args = spec.args_model.model_validate(tool_args)
    return spec.handler(gateway, args)
