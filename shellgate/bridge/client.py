"""HTTP client that relays commands to a remote bridge server."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

import httpx

from ..config import BridgeSettings
from ..types import CommandOutcome, ErrorKind, ExecutionResult

logger = logging.getLogger(__name__)

EXECUTE_PATH = "/execute"

# Added on top of the command timeout to cover the HTTP round-trip
NETWORK_MARGIN_SECONDS = 5.0


@dataclass(frozen=True)
class BridgeUnavailable:
    """Returned instead of raising when the bridge cannot be reached."""

    reason: str


def _error_kind(value: Any, default: ErrorKind) -> ErrorKind:
    try:
        return ErrorKind(value)
    except ValueError:
        return default


class BridgeClient:
    """Forwards a vetted command to a bridge server with one synchronous POST."""

    def __init__(
        self,
        base_url: str,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: BridgeSettings) -> Optional["BridgeClient"]:
        if not settings.enabled:
            return None
        return cls(settings.base_url)

    def forward(self, command: str, options: dict[str, Any]) -> Union[CommandOutcome, BridgeUnavailable]:
        """Execute ``command`` on the remote host.

        Args:
            command: Command string, already admitted by the local guard
            options: ``timeout`` (ms), optional ``workingDir`` and ``script``

        Returns:
            CommandOutcome from the remote side, or BridgeUnavailable on any
            network-level failure
        """
        timeout_s = options.get("timeout", 30_000) / 1000 + NETWORK_MARGIN_SECONDS
        url = f"{self.base_url}{EXECUTE_PATH}"
        try:
            with httpx.Client(timeout=timeout_s, transport=self._transport) as client:
                response = client.post(url, json={"command": command, "options": options})
        except httpx.HTTPError as e:
            logger.warning("Bridge at %s unavailable: %s", self.base_url, e)
            return BridgeUnavailable(f"{type(e).__name__}: {e}")

        try:
            data = response.json()
        except ValueError:
            return BridgeUnavailable(f"Bridge returned non-JSON response (HTTP {response.status_code})")
        if not isinstance(data, dict):
            return BridgeUnavailable(f"Bridge returned unexpected payload (HTTP {response.status_code})")

        if response.status_code == 200:
            result = ExecutionResult.success(
                stdout=str(data.get("output", "")),
                stderr=str(data.get("stderr", "")),
            )
            return CommandOutcome.from_result(result, via_bridge=True)

        error = str(data.get("error", f"HTTP {response.status_code}"))
        if response.status_code == 403:
            kind = _error_kind(data.get("kind"), ErrorKind.POLICY_VIOLATION)
            return CommandOutcome(error_kind=kind, message=error, via_bridge=True)
        if response.status_code == 500:
            if data.get("kind") == ErrorKind.TIMEOUT.value:
                result = ExecutionResult.timed_out(int(options.get("timeout", 30_000)))
            else:
                result = ExecutionResult.failure(
                    error,
                    exit_code=data.get("exitCode"),
                    stdout=str(data.get("output", "")),
                    stderr=str(data.get("stderr", "")),
                )
            return CommandOutcome(
                result=result,
                error_kind=_error_kind(data.get("kind"), ErrorKind.EXECUTION_FAILURE),
                message=error,
                via_bridge=True,
            )

        return BridgeUnavailable(f"Bridge answered HTTP {response.status_code}: {error}")
