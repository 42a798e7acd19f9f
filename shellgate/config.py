"""Configuration loading for shellgate.

The allowlist policy is resolved once at startup, in priority order:
1. ``--allow-all`` (block-dangerous-only mode)
2. Commands given explicitly on the command line
3. ``config.json`` in the working directory
4. Built-in defaults

Bridge settings come from environment variables.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from .policy import DEFAULT_BLOCKED_SUBSTRINGS, AllowlistPolicy
from .translation import Platform

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"

ENV_BRIDGE_ENABLED = "SHELLGATE_BRIDGE_ENABLED"
ENV_BRIDGE_HOST = "SHELLGATE_BRIDGE_HOST"
ENV_BRIDGE_PORT = "SHELLGATE_BRIDGE_PORT"
ENV_TARGET_PLATFORM = "SHELLGATE_TARGET_PLATFORM"

DEFAULT_BRIDGE_HOST = "127.0.0.1"
DEFAULT_BRIDGE_PORT = 8731


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_config_file(path: Path) -> Dict[str, Any]:
    """Read ``config.json``; a missing or malformed file yields ``{}``."""
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to load config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.error("Ignoring config file %s: top level must be an object", path)
        return {}
    return data


def _string_list(raw: Any, key: str) -> Optional[list]:
    if raw is None:
        return None
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        logger.error("Ignoring config key %r: expected a list of strings", key)
        return None
    return raw


def load_policy(
    base_dir: Optional[Path] = None,
    commands: Optional[Sequence[str]] = None,
    allow_all: bool = False,
    config_path: Optional[Path] = None,
) -> AllowlistPolicy:
    """Build the process-wide policy.

    Args:
        base_dir: Directory holding config.json (defaults to cwd)
        commands: Explicit allowlist from the command line
        allow_all: Switch to block-dangerous-only mode
        config_path: Explicit config file, overriding base_dir lookup

    Returns:
        Immutable AllowlistPolicy
    """
    if config_path is None:
        config_path = (base_dir or Path.cwd()) / CONFIG_FILENAME
    data = load_config_file(config_path)

    if allow_all:
        blocked = _string_list(data.get("blockedCommands"), "blockedCommands")
        policy = AllowlistPolicy.block_dangerous_only(blocked or DEFAULT_BLOCKED_SUBSTRINGS)
        logger.info("Policy: block dangerous commands only (%d patterns)", len(policy.blocked_substrings))
        return policy

    if commands:
        source = "command line"
        allowed: Optional[Sequence[str]] = list(commands)
    else:
        allowed = _string_list(data.get("allowedCommands"), "allowedCommands")
        source = str(config_path)

    if allowed is None:
        policy = AllowlistPolicy()
        source = "defaults"
    else:
        policy = AllowlistPolicy.allowlist(allowed)
    logger.info("Policy: %d allowed commands from %s", len(policy.allowed_prefixes), source)
    return policy


@dataclass(frozen=True)
class BridgeSettings:
    enabled: bool = False
    host: str = DEFAULT_BRIDGE_HOST
    port: int = DEFAULT_BRIDGE_PORT

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeSettings":
        env = os.environ if environ is None else environ
        port_raw = env.get(ENV_BRIDGE_PORT)
        try:
            port = int(port_raw) if port_raw else DEFAULT_BRIDGE_PORT
        except ValueError:
            raise ValueError(f"{ENV_BRIDGE_PORT} must be an integer, got {port_raw!r}")
        return cls(
            enabled=parse_bool(env.get(ENV_BRIDGE_ENABLED)),
            host=env.get(ENV_BRIDGE_HOST) or DEFAULT_BRIDGE_HOST,
            port=port,
        )


def target_platform_from_env(environ: Optional[Mapping[str, str]] = None) -> Platform:
    env = os.environ if environ is None else environ
    value = env.get(ENV_TARGET_PLATFORM)
    return Platform.parse(value) if value else Platform.WINDOWS
