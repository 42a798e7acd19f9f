"""Tests for child-process execution."""
from __future__ import annotations

import subprocess
import sys
import time
from pathlib import Path

import pytest

from shellgate.execution import (
    KILL_GRACE_SECONDS,
    MAX_OUTPUT_BYTES,
    Executor,
    _taskkill,
    normalize_timeout,
    temporary_script,
)
from shellgate.types import DEFAULT_TIMEOUT_MS, MAX_TIMEOUT_MS, ExitStatus
from tests.helpers import py


class TestRun:
    def test_captures_stdout(self):
        result = Executor().run(py("print('hello')"))
        assert result.status is ExitStatus.SUCCESS
        assert result.exit_code == 0
        assert result.stdout.strip() == "hello"
        assert result.stderr == ""

    def test_stderr_with_zero_exit_is_success(self):
        result = Executor().run(py("import sys; sys.stderr.write('careful')"))
        assert result.ok
        assert result.stderr == "careful"

    def test_stdout_and_stderr_kept_apart(self):
        result = Executor().run(py("import sys; print('out'); sys.stderr.write('err')"))
        assert result.stdout.strip() == "out"
        assert result.stderr == "err"

    def test_nonzero_exit_is_failure(self):
        result = Executor().run(py("import sys; sys.exit(3)"))
        assert result.status is ExitStatus.FAILURE
        assert result.exit_code == 3
        assert "code 3" in result.error

    def test_timeout_kills_process(self):
        start = time.monotonic()
        result = Executor().run(py("import time; time.sleep(5)"), timeout_ms=100)
        elapsed = time.monotonic() - start

        assert result.status is ExitStatus.TIMED_OUT
        assert "100 ms" in result.error
        assert elapsed < 4

    def test_working_dir(self, tmp_path):
        result = Executor().run(py("import os; print(os.getcwd())"), working_dir=tmp_path)
        assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()

    def test_missing_working_dir_reports_start_failure(self, tmp_path):
        result = Executor().run(py("print(1)"), working_dir=tmp_path / "missing")
        assert result.status is ExitStatus.FAILURE
        assert result.exit_code is None
        assert "Failed to start process" in result.error

    def test_output_truncated(self):
        result = Executor().run(py("print('x' * 60000)"))
        assert result.truncated is True
        assert result.stdout.endswith("... (output truncated)")
        assert len(result.stdout) < MAX_OUTPUT_BYTES + 100


class TestNormalizeTimeout:
    def test_default_when_missing(self):
        assert normalize_timeout(None) == DEFAULT_TIMEOUT_MS

    def test_clamped_to_max(self):
        assert normalize_timeout(MAX_TIMEOUT_MS * 10) == MAX_TIMEOUT_MS

    def test_never_zero(self):
        assert normalize_timeout(0) == 1


class TestRunScript:
    @pytest.fixture
    def script_dir(self, tmp_path):
        path = tmp_path / "scripts"
        path.mkdir()
        return path

    @pytest.fixture
    def executor(self, script_dir):
        return Executor(script_interpreter=[sys.executable], script_suffix=".py", temp_dir=script_dir)

    def test_success_removes_script(self, executor, script_dir):
        result = executor.run_script("print('from script')")
        assert result.ok
        assert result.stdout.strip() == "from script"
        assert list(script_dir.iterdir()) == []

    def test_failure_removes_script(self, executor, script_dir):
        result = executor.run_script("raise SystemExit(2)")
        assert result.status is ExitStatus.FAILURE
        assert result.exit_code == 2
        assert list(script_dir.iterdir()) == []

    def test_timeout_removes_script(self, executor, script_dir):
        result = executor.run_script("import time\ntime.sleep(5)\n", timeout_ms=200)
        assert result.status is ExitStatus.TIMED_OUT
        assert list(script_dir.iterdir()) == []

    def test_missing_interpreter_removes_script(self, tmp_path, script_dir):
        executor = Executor(
            script_interpreter=[str(tmp_path / "no-such-interpreter")],
            temp_dir=script_dir,
        )
        result = executor.run_script("Write-Output hi")
        assert result.status is ExitStatus.FAILURE
        assert "Failed to start process" in result.error
        assert list(script_dir.iterdir()) == []

    def test_multiline_body(self, executor):
        result = executor.run_script("for i in range(3):\n    print(i)\n")
        assert result.stdout.split() == ["0", "1", "2"]


class TestTemporaryScript:
    def test_unique_names_and_cleanup(self, tmp_path):
        with temporary_script("a", directory=tmp_path) as first:
            with temporary_script("b", directory=tmp_path) as second:
                assert first != second
                assert first.read_text(encoding="utf-8") == "a"
                assert second.suffix == ".ps1"
        assert not first.exists()
        assert not second.exists()

    def test_removed_when_body_raises(self, tmp_path):
        with pytest.raises(RuntimeError):
            with temporary_script("boom", directory=tmp_path) as path:
                raise RuntimeError("boom")
        assert not path.exists()


class TestTaskkill:
    def test_bounded_by_grace_period(self, monkeypatch):
        seen = {}

        def fake_run(argv, **kwargs):
            seen["argv"] = argv
            seen["timeout"] = kwargs.get("timeout")
            raise subprocess.TimeoutExpired(argv, kwargs.get("timeout"))

        monkeypatch.setattr(subprocess, "run", fake_run)
        _taskkill(4242)

        assert seen["argv"] == ["taskkill", "/F", "/T", "/PID", "4242"]
        assert seen["timeout"] == KILL_GRACE_SECONDS

    def test_missing_taskkill_is_not_fatal(self, monkeypatch):
        def fake_run(argv, **kwargs):
            raise FileNotFoundError("taskkill")

        monkeypatch.setattr(subprocess, "run", fake_run)
        _taskkill(4242)
