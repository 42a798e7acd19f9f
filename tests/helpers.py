"""Test doubles and command builders shared across the suite."""
from __future__ import annotations

import sys
from typing import List, Optional

from shellgate.types import DEFAULT_TIMEOUT_MS, ExecutionResult

PYTHON = f'"{sys.executable}"'


def py(code: str) -> str:
    """Shell command line running ``code`` with the current interpreter.

    ``code`` must not contain double quotes.
    """
    return f'{PYTHON} -c "{code}"'


class RecordingExecutor:
    """Executor stand-in that records calls instead of spawning processes."""

    def __init__(self, result: Optional[ExecutionResult] = None, error: Optional[Exception] = None):
        self.result = result or ExecutionResult.success("ok\n")
        self.error = error
        self.calls: List[tuple] = []

    def run(self, command, working_dir=None, timeout_ms=DEFAULT_TIMEOUT_MS):
        self.calls.append(("run", command, working_dir, timeout_ms))
        if self.error is not None:
            raise self.error
        return self.result

    def run_script(self, body, working_dir=None, timeout_ms=DEFAULT_TIMEOUT_MS):
        self.calls.append(("script", body, working_dir, timeout_ms))
        if self.error is not None:
            raise self.error
        return self.result
