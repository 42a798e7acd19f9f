"""The command pipeline: guard, translate, execute.

CommandGateway is the single path from a tool request to a child process:

    request -> strip wrappers -> AllowlistGuard.check
            -> BridgeClient.forward (foreign host, bridge enabled)
            -> PlatformAdapter.translate
            -> AllowlistGuard.check (block mode, rewritten command)
            -> Executor.run

Every refusal or failure comes back as a CommandOutcome; nothing raised while
handling one request reaches the hosting process.
"""
from __future__ import annotations

import logging
from typing import Optional

from .bridge.client import BridgeClient, BridgeUnavailable
from .errors import ShellGateError, TranslationRejected
from .execution import Executor
from .policy import AllowlistGuard, AllowlistPolicy, PolicyMode
from .translation import Platform, PlatformAdapter
from .types import CommandOutcome, CommandRequest, ExecutionResult

logger = logging.getLogger(__name__)

# Command token a script must be allowed under
SCRIPT_COMMAND = "powershell"


class CommandGateway:
    """Authorises and runs commands under one immutable policy."""

    def __init__(
        self,
        policy: AllowlistPolicy,
        executor: Optional[Executor] = None,
        adapter: Optional[PlatformAdapter] = None,
        bridge: Optional[BridgeClient] = None,
        host_platform: Optional[Platform] = None,
    ) -> None:
        self.guard = AllowlistGuard(policy)
        self.executor = executor or Executor()
        self.adapter = adapter or PlatformAdapter()
        self.bridge = bridge
        self.host_platform = host_platform or Platform.current()

    @property
    def policy(self) -> AllowlistPolicy:
        return self.guard.policy

    @property
    def foreign_host(self) -> bool:
        return self.adapter.is_foreign(self.host_platform)

    def list_allowed_commands(self) -> str:
        return self.policy.describe()

    def execute(self, request: CommandRequest) -> CommandOutcome:
        """Run ``request`` and report the outcome. Never raises."""
        try:
            if request.is_script:
                return self._execute_script(request)
            return self._execute_command(request)
        except ShellGateError as e:
            return CommandOutcome.rejected(e.kind, str(e))
        except Exception as e:
            logger.exception("Unexpected error while executing %r", request.command)
            return CommandOutcome.from_result(
                ExecutionResult.failure(f"Command execution failed: {e}")
            )

    def _execute_command(self, request: CommandRequest) -> CommandOutcome:
        command = request.command
        if self.foreign_host:
            command = self.adapter.strip_wrappers(command)
        self.guard.check(command)

        if not self.foreign_host:
            result = self.executor.run(command, request.working_dir, request.timeout_ms)
            return CommandOutcome.from_result(result)

        forwarded = self._forward(command, request)
        if forwarded is not None:
            return forwarded

        outcome = self.adapter.translate(command, self.host_platform)
        if outcome.rejected:
            raise TranslationRejected(outcome.reason or "No safe equivalent", token=outcome.token)
        if outcome.command != command and self.policy.mode is PolicyMode.BLOCK_DANGEROUS_ONLY:
            # Rewrites can produce host-side patterns (``del -rf`` -> ``rm -rf``).
            self.guard.check(outcome.command)
        result = self.executor.run(outcome.command, request.working_dir, request.timeout_ms)
        return CommandOutcome.from_result(result)

    def _execute_script(self, request: CommandRequest) -> CommandOutcome:
        # The script body stands in for the arguments: allowlist mode judges
        # the interpreter token, block mode scans the whole text.
        self.guard.check(f"{SCRIPT_COMMAND} {request.script}")

        if self.foreign_host:
            forwarded = self._forward(SCRIPT_COMMAND, request)
            if forwarded is not None:
                return forwarded

        result = self.executor.run_script(
            request.script or "", request.working_dir, request.timeout_ms
        )
        return CommandOutcome.from_result(result)

    def _forward(self, command: str, request: CommandRequest) -> Optional[CommandOutcome]:
        if self.bridge is None:
            return None
        reply = self.bridge.forward(command, request.bridge_options())
        if isinstance(reply, BridgeUnavailable):
            logger.warning("Bridge unavailable (%s); falling back to local execution", reply.reason)
            return None
        return reply
