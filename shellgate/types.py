"""Data models shared by the command gateway.

This module contains:
- CommandRequest: One validated tool invocation
- ExecutionResult: Output from a child process
- CommandOutcome: What the gateway hands back to a caller
- ErrorKind: Taxonomy of the ways a request can fail
"""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Default timeout in milliseconds
DEFAULT_TIMEOUT_MS = 30_000

# Upper bound for any caller-supplied timeout
MAX_TIMEOUT_MS = 300_000

NO_OUTPUT_MESSAGE = "Command executed successfully (no output)"


class CommandRequest(BaseModel):
    """A single command (or script) the caller wants executed."""

    model_config = ConfigDict(frozen=True)

    command: str = Field(description="Command line to execute")
    working_dir: Optional[Path] = None
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    script: Optional[str] = Field(
        default=None,
        description="Script body for script-style execution",
    )

    @property
    def is_script(self) -> bool:
        return self.script is not None

    def bridge_options(self) -> dict:
        """Options object sent alongside the command over the bridge."""
        options: dict = {"timeout": self.timeout_ms}
        if self.working_dir is not None:
            options["workingDir"] = str(self.working_dir)
        if self.script is not None:
            options["script"] = self.script
        return options


class ExitStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    TIMED_OUT = "timed_out"


class ExecutionResult(BaseModel):
    """Result from running one child process."""

    model_config = ConfigDict(frozen=True)

    stdout: str = ""
    stderr: str = ""
    status: ExitStatus
    exit_code: Optional[int] = None
    error: Optional[str] = None
    truncated: bool = False  # True if output exceeded limit

    @classmethod
    def success(cls, stdout: str, stderr: str = "", truncated: bool = False) -> "ExecutionResult":
        return cls(
            stdout=stdout,
            stderr=stderr,
            status=ExitStatus.SUCCESS,
            exit_code=0,
            truncated=truncated,
        )

    @classmethod
    def failure(
        cls,
        error: str,
        exit_code: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        truncated: bool = False,
    ) -> "ExecutionResult":
        return cls(
            stdout=stdout,
            stderr=stderr,
            status=ExitStatus.FAILURE,
            exit_code=exit_code,
            error=error,
            truncated=truncated,
        )

    @classmethod
    def timed_out(cls, timeout_ms: int, stdout: str = "", stderr: str = "") -> "ExecutionResult":
        return cls(
            stdout=stdout,
            stderr=stderr,
            status=ExitStatus.TIMED_OUT,
            error=f"Command timed out after {timeout_ms} ms",
        )

    @property
    def ok(self) -> bool:
        return self.status is ExitStatus.SUCCESS


class ErrorKind(str, Enum):
    POLICY_VIOLATION = "policy_violation"
    TRANSLATION_REJECTED = "translation_rejected"
    EXECUTION_FAILURE = "execution_failure"
    TIMEOUT = "timeout"
    BRIDGE_UNAVAILABLE = "bridge_unavailable"


class CommandOutcome(BaseModel):
    """What the gateway returns for one request.

    Either ``error_kind`` is None and ``result`` holds a successful
    execution, or ``error_kind`` names the failure and ``message`` explains
    it. A failed or timed-out execution keeps its ``result`` so partial
    output is still available.
    """

    model_config = ConfigDict(frozen=True)

    result: Optional[ExecutionResult] = None
    error_kind: Optional[ErrorKind] = None
    message: str = ""
    via_bridge: bool = False

    @classmethod
    def from_result(cls, result: ExecutionResult, via_bridge: bool = False) -> "CommandOutcome":
        if result.status is ExitStatus.SUCCESS:
            return cls(result=result, via_bridge=via_bridge)
        if result.status is ExitStatus.TIMED_OUT:
            kind = ErrorKind.TIMEOUT
        else:
            kind = ErrorKind.EXECUTION_FAILURE
        return cls(
            result=result,
            error_kind=kind,
            message=result.error or "Command failed",
            via_bridge=via_bridge,
        )

    @classmethod
    def rejected(cls, kind: ErrorKind, message: str) -> "CommandOutcome":
        return cls(error_kind=kind, message=message)

    @property
    def is_error(self) -> bool:
        return self.error_kind is not None

    @property
    def stdout(self) -> str:
        return self.result.stdout if self.result else ""

    @property
    def stderr(self) -> str:
        return self.result.stderr if self.result else ""

    def render(self) -> str:
        """Render as the text a tool caller sees."""
        if not self.is_error:
            text = self.stdout or NO_OUTPUT_MESSAGE
            if self.stderr:
                text = f"{text}\n\nstderr:\n{self.stderr}"
            return text

        text = f"Error: {self.message}"
        details = self.stderr or self.stdout
        if details:
            text = f"{text}\n{details}"
        return text


__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "MAX_TIMEOUT_MS",
    "NO_OUTPUT_MESSAGE",
    "CommandOutcome",
    "CommandRequest",
    "ErrorKind",
    "ExecutionResult",
    "ExitStatus",
]
