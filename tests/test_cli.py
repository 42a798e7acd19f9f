"""Tests for the shellgate command line."""
import os

import pytest

from shellgate.cli import main

posix_only = pytest.mark.skipif(os.name == "nt", reason="uses POSIX shell commands")


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


@posix_only
def test_run_allowed_command(capsys):
    assert main(["--run", "echo hello"]) == 0
    assert capsys.readouterr().out == "hello\n\n"


def test_run_denied_command(capsys):
    assert main(["echo", "--run", "rm -rf build"]) == 1
    err = capsys.readouterr().err
    assert "Command 'rm' is not in the allowed list" in err


def test_allow_all_still_blocks_dangerous(capsys):
    assert main(["--allow-all", "--run", "shutdown /s /t 0"]) == 1
    assert "shutdown" in capsys.readouterr().err


def test_config_file_in_cwd(tmp_path, capsys):
    (tmp_path / "config.json").write_text('{"allowedCommands": ["git"]}', encoding="utf-8")
    assert main(["--run", "echo hi"]) == 1
    assert "'echo'" in capsys.readouterr().err


def test_conflicting_modes(capsys):
    assert main(["--bridge-server", "--run", "echo hi"]) == 1
    assert "Cannot combine" in capsys.readouterr().err


def test_rejects_non_positive_timeout(capsys):
    assert main(["--timeout", "0", "--run", "echo hi"]) == 1


def test_bad_bridge_port_is_startup_failure(monkeypatch, capsys):
    monkeypatch.setenv("SHELLGATE_BRIDGE_PORT", "not-a-port")
    assert main(["--run", "echo hi"]) == 1
    assert "Fatal error" in capsys.readouterr().err
