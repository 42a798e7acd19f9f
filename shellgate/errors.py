"""Exceptions raised inside the command pipeline.

These never escape the gateway: ``CommandGateway.execute`` converts them
into ``CommandOutcome`` values carrying the matching ``ErrorKind``.
"""
from __future__ import annotations

from .types import ErrorKind


class ShellGateError(Exception):
    """Base error for requests the gateway refuses to run."""

    kind: ErrorKind = ErrorKind.EXECUTION_FAILURE


class PolicyViolation(ShellGateError):
    """Raised when the allowlist policy denies a command."""

    kind = ErrorKind.POLICY_VIOLATION

    def __init__(self, reason: str, token: str = "") -> None:
        super().__init__(reason)
        self.token = token


class TranslationRejected(ShellGateError):
    """Raised when a command has no safe equivalent on the host platform."""

    kind = ErrorKind.TRANSLATION_REJECTED

    def __init__(self, reason: str, token: str = "") -> None:
        super().__init__(reason)
        self.token = token
