"""Child-process execution with a hard wall-clock timeout.

This module provides:
- Executor.run: run one command line through the system shell
- Executor.run_script: write a script body to a temporary file and run an
  interpreter against it
- temporary_script: scoped creation and removal of that file

Nothing here checks policy. Callers must only pass commands the guard has
already admitted (see gateway.CommandGateway).
"""
from __future__ import annotations

import logging
import os
import secrets
import signal
import subprocess
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from .types import DEFAULT_TIMEOUT_MS, MAX_TIMEOUT_MS, ExecutionResult

logger = logging.getLogger(__name__)

# Maximum output size in characters (50KB)
MAX_OUTPUT_BYTES = 50 * 1024

# Seconds to wait for pipes to drain after killing a timed-out process
KILL_GRACE_SECONDS = 2.0

# Interpreter argv prefixes; the script path is appended
WINDOWS_SCRIPT_INTERPRETER = (
    "powershell", "-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-File",
)
POSIX_SCRIPT_INTERPRETER = ("pwsh", "-NoProfile", "-NonInteractive", "-File")

PathLike = Union[str, Path]


def normalize_timeout(timeout_ms: Optional[int]) -> int:
    """Clamp a caller-supplied timeout into (0, MAX_TIMEOUT_MS]."""
    if timeout_ms is None:
        return DEFAULT_TIMEOUT_MS
    return min(max(int(timeout_ms), 1), MAX_TIMEOUT_MS)


def default_script_interpreter() -> Tuple[str, ...]:
    return WINDOWS_SCRIPT_INTERPRETER if os.name == "nt" else POSIX_SCRIPT_INTERPRETER


@contextmanager
def temporary_script(
    body: str,
    suffix: str = ".ps1",
    directory: Optional[PathLike] = None,
) -> Iterator[Path]:
    """Write ``body`` to a uniquely named file and remove it on exit.

    The name combines a nanosecond timestamp with a random suffix, and the
    file is created exclusively, so concurrent invocations never collide.
    """
    prefix = f"shellgate_{time.time_ns()}_{secrets.token_hex(4)}_"
    fd, name = tempfile.mkstemp(suffix=suffix, prefix=prefix, dir=directory)
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(body)
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error("Failed to remove temporary script %s: %s", path, e)


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


def _truncate(text: str) -> Tuple[str, bool]:
    if len(text) > MAX_OUTPUT_BYTES:
        return text[:MAX_OUTPUT_BYTES] + "\n... (output truncated)", True
    return text, False


def _taskkill(pid: int) -> None:
    try:
        subprocess.run(
            ["taskkill", "/F", "/T", "/PID", str(pid)],
            capture_output=True,
            check=False,
            timeout=KILL_GRACE_SECONDS,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning("taskkill for pid %d did not complete: %s", pid, e)


def _kill_tree(process: subprocess.Popen) -> None:
    """Kill ``process`` and everything it spawned."""
    if os.name == "nt":
        _taskkill(process.pid)
    else:
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass
    try:
        process.kill()
    except OSError:
        pass


class Executor:
    """Runs vetted commands as child processes.

    Each call spawns its own process in a fresh process group so a timeout
    can take down the whole tree, including anything the shell started.
    """

    def __init__(
        self,
        script_interpreter: Optional[Sequence[str]] = None,
        script_suffix: str = ".ps1",
        temp_dir: Optional[PathLike] = None,
        env: Optional[dict] = None,
    ) -> None:
        self.script_interpreter = tuple(script_interpreter or default_script_interpreter())
        self.script_suffix = script_suffix
        self.temp_dir = temp_dir
        self.env = env

    def run(
        self,
        command: str,
        working_dir: Optional[PathLike] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> ExecutionResult:
        """Execute a command line through the system shell.

        Args:
            command: Command string to execute
            working_dir: Working directory for the command (defaults to cwd)
            timeout_ms: Hard wall-clock limit in milliseconds

        Returns:
            ExecutionResult with SUCCESS, FAILURE or TIMED_OUT status
        """
        logger.info("Executing shell command: %r", command)
        return self._spawn(command, shell=True, working_dir=working_dir, timeout_ms=timeout_ms)

    def run_script(
        self,
        body: str,
        working_dir: Optional[PathLike] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> ExecutionResult:
        """Execute a script body via the configured interpreter.

        The temporary script file is gone by the time this returns, whatever
        the outcome.
        """
        with temporary_script(body, suffix=self.script_suffix, directory=self.temp_dir) as path:
            argv: List[str] = [*self.script_interpreter, str(path)]
            logger.info("Executing script %s with %s", path.name, argv[0])
            return self._spawn(argv, shell=False, working_dir=working_dir, timeout_ms=timeout_ms)

    def _spawn(
        self,
        args: Union[str, List[str]],
        shell: bool,
        working_dir: Optional[PathLike],
        timeout_ms: int,
    ) -> ExecutionResult:
        timeout_ms = normalize_timeout(timeout_ms)
        kwargs: dict = {}
        if os.name == "nt":
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            kwargs["start_new_session"] = True

        try:
            process = subprocess.Popen(
                args,
                shell=shell,
                cwd=working_dir,
                env=self.env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                **kwargs,
            )
        except OSError as e:
            logger.warning("Failed to start %r: %s", args, e)
            return ExecutionResult.failure(f"Failed to start process: {e}")

        try:
            raw_out, raw_err = process.communicate(timeout=timeout_ms / 1000)
        except subprocess.TimeoutExpired:
            _kill_tree(process)
            try:
                raw_out, raw_err = process.communicate(timeout=KILL_GRACE_SECONDS)
            except subprocess.TimeoutExpired:
                raw_out, raw_err = b"", b""
            logger.warning("Command timed out after %d ms: %r", timeout_ms, args)
            stdout, _ = _truncate(_decode(raw_out))
            stderr, _ = _truncate(_decode(raw_err))
            return ExecutionResult.timed_out(timeout_ms, stdout=stdout, stderr=stderr)

        stdout, out_truncated = _truncate(_decode(raw_out))
        stderr, err_truncated = _truncate(_decode(raw_err))
        truncated = out_truncated or err_truncated

        if process.returncode != 0:
            return ExecutionResult.failure(
                f"Command exited with code {process.returncode}",
                exit_code=process.returncode,
                stdout=stdout,
                stderr=stderr,
                truncated=truncated,
            )
        return ExecutionResult.success(stdout, stderr, truncated=truncated)
