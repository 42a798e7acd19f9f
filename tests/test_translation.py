"""Tests for cross-platform command translation."""
from __future__ import annotations

import pytest

from shellgate.translation import (
    Platform,
    PlatformAdapter,
    TranslationKind,
    TranslationRule,
    strip_wrappers,
)


@pytest.fixture
def adapter():
    return PlatformAdapter()


class TestScenario:
    @pytest.fixture
    def small_adapter(self):
        return PlatformAdapter(
            rules=[TranslationRule("dir", "ls -la"), TranslationRule("reg", None)],
            target_platform=Platform.WINDOWS,
        )

    def test_translated(self, small_adapter):
        outcome = small_adapter.translate("dir /b", Platform.POSIX)
        assert outcome.kind is TranslationKind.TRANSLATED
        assert outcome.command == "ls -la /b"

    def test_rejected(self, small_adapter):
        outcome = small_adapter.translate("reg query HKLM", Platform.POSIX)
        assert outcome.rejected
        assert outcome.token == "reg"
        assert "'reg'" in outcome.reason

    def test_same_platform_unchanged(self, small_adapter):
        outcome = small_adapter.translate("reg query HKLM", Platform.WINDOWS)
        assert outcome.kind is TranslationKind.UNCHANGED
        assert outcome.command == "reg query HKLM"


class TestDefaultRules:
    @pytest.mark.parametrize(
        "command,expected",
        [
            ("dir", "ls -la"),
            ("DIR /b", "ls -la /b"),
            ("type notes.txt", "cat notes.txt"),
            ("ipconfig /all", "ip addr show"),
            ("ipconfig", "ip addr"),
            ("xcopy a b", "cp -r a b"),
            ("Get-ChildItem", "ls -la"),
            ("tasklist", "ps aux"),
        ],
    )
    def test_translations(self, adapter, command, expected):
        outcome = adapter.translate(command, Platform.POSIX)
        assert outcome.kind is TranslationKind.TRANSLATED
        assert outcome.command == expected

    @pytest.mark.parametrize(
        "command,expected",
        [
            ("echo start && dir", "echo start && ls -la"),
            ("dir; type x", "ls -la; cat x"),
            ("git status | findstr foo", "git status | grep foo"),
            ("echo a || where node", "echo a || which node"),
        ],
    )
    def test_tokens_after_separators(self, adapter, command, expected):
        assert adapter.translate(command, Platform.POSIX).command == expected

    @pytest.mark.parametrize(
        "command",
        ["echo dirty", "echo type", "director", "scp file host:", "git log --format=short"],
    )
    def test_no_match_inside_words_or_arguments(self, adapter, command):
        outcome = adapter.translate(command, Platform.POSIX)
        assert outcome.kind is TranslationKind.UNCHANGED
        assert outcome.command == command

    @pytest.mark.parametrize(
        "command,token",
        [
            ("reg query HKLM", "reg"),
            ("echo hi && reg query HKLM", "reg"),
            ("sc query wuauserv", "sc"),
            ("Get-Service", "Get-Service"),
        ],
    )
    def test_rejected_without_equivalent(self, adapter, command, token):
        outcome = adapter.translate(command, Platform.POSIX)
        assert outcome.rejected
        assert outcome.token == token

    @pytest.mark.parametrize("command", ["echo hello", "git status", "npm run build"])
    def test_unchanged_is_idempotent(self, adapter, command):
        first = adapter.translate(command, Platform.POSIX)
        second = adapter.translate(first.command, Platform.POSIX)
        assert first.kind is TranslationKind.UNCHANGED
        assert second.kind is TranslationKind.UNCHANGED
        assert second.command == command

    @pytest.mark.parametrize("command", ["dir /b", "type a.txt", "ipconfig /all", "ver", "where git"])
    def test_translated_output_not_substituted_twice(self, adapter, command):
        first = adapter.translate(command, Platform.POSIX)
        second = adapter.translate(first.command, Platform.POSIX)
        assert second.kind is TranslationKind.UNCHANGED

    def test_wrapper_stripped_before_rules(self, adapter):
        outcome = adapter.translate('powershell -Command "Get-ChildItem"', Platform.POSIX)
        assert outcome.kind is TranslationKind.TRANSLATED
        assert outcome.command == "ls -la"

    def test_wrapper_only_change_counts_as_translated(self, adapter):
        outcome = adapter.translate("cmd /c echo hi", Platform.POSIX)
        assert outcome.kind is TranslationKind.TRANSLATED
        assert outcome.command == "echo hi"


class TestStripWrappers:
    @pytest.mark.parametrize(
        "command,expected",
        [
            ('powershell -Command "Get-Process"', "Get-Process"),
            ("powershell.exe -NoProfile -ExecutionPolicy Bypass -Command dir", "dir"),
            ("pwsh -c 'Get-Location'", "Get-Location"),
            ("cmd /c dir /b", "dir /b"),
            ('cmd.exe /C "powershell -Command type x"', "type x"),
        ],
    )
    def test_strips(self, command, expected):
        assert strip_wrappers(command) == expected

    @pytest.mark.parametrize("command", ["powershell Get-Process", "echo -Command x", "git status"])
    def test_leaves_other_commands(self, command):
        assert strip_wrappers(command) == command


class TestPlatform:
    def test_parse_aliases(self):
        assert Platform.parse("Win32") is Platform.WINDOWS
        assert Platform.parse("linux") is Platform.POSIX

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown platform"):
            Platform.parse("beos")

    def test_adapter_is_foreign(self):
        adapter = PlatformAdapter(target_platform=Platform.WINDOWS)
        assert adapter.is_foreign(Platform.POSIX)
        assert not adapter.is_foreign(Platform.WINDOWS)
