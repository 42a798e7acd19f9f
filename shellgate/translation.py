"""Cross-platform command translation.

The command vocabulary exposed to callers assumes one target platform
(Windows by default). When the gateway runs on a different host, commands
are rewritten with an ordered rule table before execution. A rule whose
target is None marks a command with no safe equivalent: any command using
it is rejected rather than guessed at.

Rules only match at the start of the command or directly after a command
separator, so ``dir`` never matches inside ``echo dirty``.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


class Platform(str, Enum):
    WINDOWS = "windows"
    POSIX = "posix"

    @classmethod
    def current(cls) -> "Platform":
        return cls.WINDOWS if os.name == "nt" else cls.POSIX

    @classmethod
    def parse(cls, value: str) -> "Platform":
        value = value.strip().lower()
        if value in ("windows", "win", "win32", "nt"):
            return cls.WINDOWS
        if value in ("posix", "linux", "darwin", "macos", "unix"):
            return cls.POSIX
        raise ValueError(f"Unknown platform: {value!r}")


@dataclass(frozen=True)
class TranslationRule:
    source: str
    target: Optional[str]


# Order matters: specific forms come before the bare token they start with.
WINDOWS_TO_POSIX_RULES: tuple[TranslationRule, ...] = (
    TranslationRule("ipconfig /all", "ip addr show"),
    TranslationRule("ipconfig", "ip addr"),
    TranslationRule("dir", "ls -la"),
    TranslationRule("cls", "clear"),
    TranslationRule("type", "cat"),
    TranslationRule("xcopy", "cp -r"),
    TranslationRule("copy", "cp"),
    TranslationRule("move", "mv"),
    TranslationRule("del", "rm"),
    TranslationRule("erase", "rm"),
    TranslationRule("md", "mkdir"),
    TranslationRule("rd", "rmdir"),
    TranslationRule("findstr", "grep"),
    TranslationRule("tasklist", "ps aux"),
    TranslationRule("where", "which"),
    TranslationRule("systeminfo", "uname -a"),
    TranslationRule("ver", "uname -a"),
    TranslationRule("Get-ChildItem", "ls -la"),
    TranslationRule("Get-Content", "cat"),
    TranslationRule("Get-Location", "pwd"),
    TranslationRule("Get-Process", "ps aux"),
    TranslationRule("Remove-Item", "rm"),
    TranslationRule("Write-Output", "echo"),
    TranslationRule("Write-Host", "echo"),
    # No safe equivalent
    TranslationRule("reg", None),
    TranslationRule("regedit", None),
    TranslationRule("sc", None),
    TranslationRule("schtasks", None),
    TranslationRule("taskkill", None),
    TranslationRule("wmic", None),
    TranslationRule("netsh", None),
    TranslationRule("bcdedit", None),
    TranslationRule("diskpart", None),
    TranslationRule("Get-Service", None),
    TranslationRule("Get-WmiObject", None),
    TranslationRule("Get-CimInstance", None),
)

_WRAPPER_PATTERNS = (
    re.compile(
        r"^\s*(?:powershell|pwsh)(?:\.exe)?\s+"
        r"(?:-\S+(?:\s+[^-\s]\S*)?\s+)*?"
        r"-(?:command|c)\s+(?P<body>.+)$",
        re.IGNORECASE | re.DOTALL,
    ),
    re.compile(r"^\s*cmd(?:\.exe)?\s+/[ck]\s+(?P<body>.+)$", re.IGNORECASE | re.DOTALL),
)


@lru_cache(maxsize=None)
def _token_pattern(source: str) -> re.Pattern[str]:
    return re.compile(
        rf"(^|&&|\|\||[;&|\n])(\s*){re.escape(source)}(?=$|[\s;&|])",
        re.IGNORECASE,
    )


class TranslationKind(str, Enum):
    UNCHANGED = "unchanged"
    TRANSLATED = "translated"
    REJECTED = "rejected"


@dataclass(frozen=True)
class TranslationOutcome:
    kind: TranslationKind
    command: str
    reason: Optional[str] = None
    token: str = ""

    @property
    def rejected(self) -> bool:
        return self.kind is TranslationKind.REJECTED


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    return text


def strip_wrappers(command: str) -> str:
    """Remove foreign-shell invocation wrappers such as ``powershell -Command``."""
    current = command
    while True:
        for pattern in _WRAPPER_PATTERNS:
            match = pattern.match(current)
            if match:
                current = _unquote(match.group("body"))
                break
        else:
            return current


class PlatformAdapter:
    """Applies an ordered rule table to commands destined for a foreign host."""

    def __init__(
        self,
        rules: Sequence[TranslationRule] = WINDOWS_TO_POSIX_RULES,
        target_platform: Platform = Platform.WINDOWS,
    ) -> None:
        self._rules = tuple(rules)
        self._target = target_platform

    @property
    def target_platform(self) -> Platform:
        return self._target

    @property
    def rules(self) -> tuple[TranslationRule, ...]:
        return self._rules

    def is_foreign(self, host_platform: Platform) -> bool:
        return host_platform is not self._target

    def strip_wrappers(self, command: str) -> str:
        return strip_wrappers(command)

    def translate(self, command: str, host_platform: Platform) -> TranslationOutcome:
        """Rewrite ``command`` for ``host_platform``.

        Args:
            command: Command in the target platform's vocabulary
            host_platform: Platform the command will actually run on

        Returns:
            TranslationOutcome: UNCHANGED, TRANSLATED with the new command,
            or REJECTED naming the offending token
        """
        if not self.is_foreign(host_platform):
            return TranslationOutcome(TranslationKind.UNCHANGED, command)

        current = strip_wrappers(command)
        for rule in self._rules:
            pattern = _token_pattern(rule.source)
            if not pattern.search(current):
                continue
            if rule.target is None:
                reason = (
                    f"Command '{rule.source}' has no safe equivalent on "
                    f"{host_platform.value}"
                )
                logger.warning("Translation rejected %r: %s", command, reason)
                return TranslationOutcome(
                    TranslationKind.REJECTED, command, reason=reason, token=rule.source
                )
            target = rule.target
            current = pattern.sub(lambda m: m.group(1) + m.group(2) + target, current)
            logger.debug("Applied rule %r -> %r", rule.source, target)

        if current == command:
            return TranslationOutcome(TranslationKind.UNCHANGED, command)
        logger.info("Translated %r -> %r", command, current)
        return TranslationOutcome(TranslationKind.TRANSLATED, current)
