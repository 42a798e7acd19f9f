"""shellgate: allowlist-guarded command execution for AI assistants.

Main entry points:
- shellgate CLI: serve the tools over MCP stdio, run a bridge server, or
  execute one command
- CommandGateway: programmatic API (guard -> translate -> execute)
- GatewayToolset: the same tools as a PydanticAI toolset

Security model: the allowlist is a coarse, auditable filter on the first
word of a command. It is not a sandbox.
"""
from __future__ import annotations

__version__ = "0.4.0"

from .config import BridgeSettings, load_policy
from .errors import PolicyViolation, ShellGateError, TranslationRejected
from .execution import Executor
from .gateway import CommandGateway
from .policy import AllowlistGuard, AllowlistPolicy, Decision, PolicyMode, evaluate
from .translation import (
    Platform,
    PlatformAdapter,
    TranslationKind,
    TranslationOutcome,
    TranslationRule,
)
from .types import (
    CommandOutcome,
    CommandRequest,
    ErrorKind,
    ExecutionResult,
    ExitStatus,
)

__all__ = [
    # Policy
    "AllowlistGuard",
    "AllowlistPolicy",
    "Decision",
    "PolicyMode",
    "evaluate",
    "load_policy",
    # Translation
    "Platform",
    "PlatformAdapter",
    "TranslationKind",
    "TranslationOutcome",
    "TranslationRule",
    # Execution
    "CommandGateway",
    "Executor",
    "BridgeSettings",
    # Types
    "CommandOutcome",
    "CommandRequest",
    "ErrorKind",
    "ExecutionResult",
    "ExitStatus",
    # Errors
    "PolicyViolation",
    "ShellGateError",
    "TranslationRejected",
    # Version
    "__version__",
]
