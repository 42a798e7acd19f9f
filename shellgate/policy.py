"""Allowlist policy and the guard that evaluates commands against it.

Two modes are supported:
- ALLOWLIST: the base token (first whitespace-delimited word) must exactly
  match an allowed entry. Arguments are never inspected.
- BLOCK_DANGEROUS_ONLY: everything runs unless the full command string
  contains a blocked substring.

Security note: matching is coarse on purpose. An allowed base token followed
by a chained command (``echo hi && del x``) is admitted in ALLOWLIST mode.
This is not a sandbox.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import PolicyViolation

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_COMMANDS = (
    # System information commands
    "dir", "echo", "whoami", "hostname", "systeminfo", "ver",
    "ipconfig", "ping", "tasklist", "time", "date", "type",
    "find", "findstr", "where", "help", "netstat", "sc",
    "schtasks", "powershell", "powershell.exe",
    # Development tool commands
    "npm", "yarn", "node", "git", "code",
    "python", "pip", "nvm", "pnpm",
)

DEFAULT_BLOCKED_SUBSTRINGS = (
    "shutdown",
    "restart-computer",
    "stop-computer",
    "format c:",
    "diskpart",
    "bcdedit",
    "del /s",
    "del /q",
    "rd /s",
    "rmdir /s",
    "remove-item -recurse",
    "reg delete",
    "vssadmin delete",
    "cipher /w",
    "takeown",
    "net user",
    "rm -rf",
    "mkfs",
    "dd if=",
    ":(){",
)


class PolicyMode(str, Enum):
    ALLOWLIST = "allowlist"
    BLOCK_DANGEROUS_ONLY = "block_dangerous_only"


def _normalize(entries: Iterable[str]) -> FrozenSet[str]:
    return frozenset(e.strip().lower() for e in entries if e and e.strip())


class AllowlistPolicy(BaseModel):
    """Process-wide command policy. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    mode: PolicyMode = PolicyMode.ALLOWLIST
    allowed_prefixes: FrozenSet[str] = frozenset(DEFAULT_ALLOWED_COMMANDS)
    blocked_substrings: FrozenSet[str] = frozenset(DEFAULT_BLOCKED_SUBSTRINGS)

    @field_validator("allowed_prefixes", "blocked_substrings", mode="before")
    @classmethod
    def _lowercase(cls, value: Iterable[str]) -> FrozenSet[str]:
        if isinstance(value, str):
            value = [value]
        return _normalize(value)

    @classmethod
    def allowlist(cls, commands: Iterable[str]) -> "AllowlistPolicy":
        return cls(mode=PolicyMode.ALLOWLIST, allowed_prefixes=commands)

    @classmethod
    def block_dangerous_only(
        cls, blocked: Iterable[str] = DEFAULT_BLOCKED_SUBSTRINGS
    ) -> "AllowlistPolicy":
        return cls(mode=PolicyMode.BLOCK_DANGEROUS_ONLY, blocked_substrings=blocked)

    def describe(self) -> str:
        """Human-readable listing for the list_allowed_commands tool."""
        if self.mode is PolicyMode.ALLOWLIST:
            return "Allowed commands:\n" + "\n".join(sorted(self.allowed_prefixes))
        return (
            "All commands are allowed except those containing:\n"
            + "\n".join(sorted(self.blocked_substrings))
        )


@dataclass(frozen=True)
class Decision:
    """Outcome of evaluating one command."""

    allowed: bool
    reason: Optional[str] = None
    token: str = ""

    @classmethod
    def allow(cls, token: str = "") -> "Decision":
        return cls(allowed=True, token=token)

    @classmethod
    def deny(cls, reason: str, token: str = "") -> "Decision":
        return cls(allowed=False, reason=reason, token=token)


def base_token(command: str) -> str:
    """Return the first whitespace-delimited word, lower-cased."""
    parts = command.split(None, 1)
    return parts[0].lower() if parts else ""


def evaluate(command: str, policy: AllowlistPolicy) -> Decision:
    """Decide whether ``command`` may run under ``policy``.

    Args:
        command: Raw command string
        policy: Policy to evaluate against

    Returns:
        Decision.allow or Decision.deny with the rejected token named
    """
    token = base_token(command)
    if not token:
        return Decision.deny("Empty command")

    if policy.mode is PolicyMode.BLOCK_DANGEROUS_ONLY:
        lowered = command.lower()
        for blocked in sorted(policy.blocked_substrings):
            if blocked in lowered:
                return Decision.deny(
                    f"Command contains blocked pattern '{blocked}'",
                    token=blocked,
                )
        return Decision.allow(token)

    if token in policy.allowed_prefixes:
        return Decision.allow(token)
    return Decision.deny(f"Command '{token}' is not in the allowed list", token=token)


class AllowlistGuard:
    """Binds a policy to the evaluate/check entry points used by the gateway."""

    def __init__(self, policy: AllowlistPolicy) -> None:
        self._policy = policy

    @property
    def policy(self) -> AllowlistPolicy:
        return self._policy

    def evaluate(self, command: str) -> Decision:
        return evaluate(command, self._policy)

    def check(self, command: str) -> None:
        """Raise PolicyViolation unless ``command`` is admitted."""
        decision = self.evaluate(command)
        if not decision.allowed:
            logger.warning("Rejected command %r: %s", command, decision.reason)
            raise PolicyViolation(decision.reason or "Command not allowed", token=decision.token)
        logger.debug("Admitted command %r (token %r)", command, decision.token)
