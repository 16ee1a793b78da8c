# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Configuration and filesystem locations for Blaze Shell.

Handles:
- Packaged YAML defaults loading (blaze_shell/defaults/system.yaml)
- Runtime resolution of platform / execution strategy / fs mode,
  including environment overrides (BLAZE_*)
- Data root resolution for the crash log (BLAZE_DATA_HOME, ~/.local/share)
- History file location ({home}/.blaze_history)
- ANSI coloring constants for the plain (legacy) REPL output
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from enum import Enum
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Any

import yaml


# -----------------------
# Runtime selectors
# -----------------------


class Platform(Enum):
    """Target OS family for allowlist and translation tables."""
    WINDOWS = "windows"
    UNIX = "unix"


class FsMode(Enum):
    """Filesystem mutation mode selecting the allowlist table."""
    SAFE = "safe"
    STANDARD = "standard"
    UNSAFE = "unsafe"


class Strategy(Enum):
    """External execution strategy."""
    BLOCKING = "blocking"
    STREAMING = "streaming"


# -----------------------
# UI constants
# -----------------------

ANSI_COLORS: dict[str, str] = {
    "orange": "\033[38;2;255;165;1;1m",
    "cyan": "\033[38;5;69;1m",
    "reset": "\033[0m",
    "dim": "\033[2m",
    "green": "\033[32m",
    "red": "\033[31m",
}

# Transcript entry kind -> ANSI color name (legacy UI)
KIND_COLORS: dict[str, str] = {
    "command": "cyan",
    "output": "reset",
    "error": "red",
    "system": "orange",
}

# Clear screen + home cursor (legacy UI)
CLEAR_SCREEN = "\033[2J\033[H"

MAX_LINES = 5000
HISTORY_FILENAME = ".blaze_history"


# -----------------------
# Config model wrapper
# -----------------------


class YAMLConfig:
    """Simple config wrapper that implements ConfigModel protocol."""

    def __init__(self, config_dict: dict[str, Any]):
        self._config = config_dict

    @property
    def system(self) -> dict[str, Any]:
        return self._section("system")

    @property
    def transcript(self) -> dict[str, Any]:
        return self._section("transcript")

    @property
    def execution(self) -> dict[str, Any]:
        return self._section("execution")

    @property
    def allowlist(self) -> dict[str, Any]:
        return self._section("allowlist")

    @property
    def translations(self) -> dict[str, Any]:
        return self._section("translations")

    @property
    def help(self) -> dict[str, Any]:
        return self._section("help")

    @property
    def builtins(self) -> list[str]:
        names = self._config.get("builtins", [])
        return [str(n) for n in names] if isinstance(names, list) else []

    def _section(self, key: str) -> dict[str, Any]:
        val = self._config.get(key, {})
        return val if isinstance(val, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def get_path(self, path: str, default: Any = None) -> Any:
        """
        Nested lookup using dot-separated path.
        Example: get_path("execution.timeout_seconds", 15)
        """
        if not path:
            return default

        cur: Any = self._config
        for part in path.split("."):
            if not isinstance(cur, dict):
                return default
            if part not in cur:
                return default
            cur = cur[part]
        return cur


# -----------------------
# Runtime settings
# -----------------------


@dataclass(frozen=True)
class RuntimeSettings:
    """Execution settings resolved once at startup."""

    platform: Platform
    strategy: Strategy
    fs_mode: FsMode
    timeout: float = 15.0
    poll_interval: float = 0.05
    max_output_bytes: int = 1024 * 1024
    max_file_read_bytes: int = 512 * 1024
    direct_fs_ops: bool = True
    max_lines: int = MAX_LINES
    history_limit: int = 500


def host_platform() -> Platform:
    return Platform.WINDOWS if sys.platform.startswith("win") else Platform.UNIX


def parse_platform(value: str) -> Platform:
    value = (value or "auto").strip().lower()
    if value == "auto":
        return host_platform()
    try:
        return Platform(value)
    except ValueError:
        raise ValueError(f"Unknown platform: {value}") from None


def parse_fs_mode(value: str) -> FsMode:
    value = (value or "standard").strip().lower()
    # "unsafe-fs" is the build-flag spelling
    if value == "unsafe-fs":
        value = "unsafe"
    try:
        return FsMode(value)
    except ValueError:
        raise ValueError(f"Unknown fs_mode: {value}") from None


def parse_strategy(value: str, platform: Platform) -> Strategy:
    value = (value or "auto").strip().lower()
    if value == "auto":
        if platform is Platform.WINDOWS:
            return Strategy.BLOCKING
        return Strategy.STREAMING
    try:
        return Strategy(value)
    except ValueError:
        raise ValueError(f"Unknown execution strategy: {value}") from None


def resolve_runtime(
    cfg: YAMLConfig, env: dict[str, str] | None = None
) -> RuntimeSettings:
    """Resolve RuntimeSettings from config plus BLAZE_* env overrides.

    Resolution order for each selector:
    1. BLAZE_PLATFORM / BLAZE_STRATEGY / BLAZE_FS_MODE / BLAZE_TIMEOUT
    2. execution.* in system.yaml
    3. built-in defaults
    """
    if env is None:
        env = dict(os.environ)
    exe = cfg.execution

    platform = parse_platform(
        env.get("BLAZE_PLATFORM") or str(exe.get("platform", "auto"))
    )
    strategy = parse_strategy(
        env.get("BLAZE_STRATEGY") or str(exe.get("strategy", "auto")),
        platform,
    )
    fs_mode = parse_fs_mode(
        env.get("BLAZE_FS_MODE") or str(exe.get("fs_mode", "standard"))
    )

    timeout_raw = env.get("BLAZE_TIMEOUT") or exe.get("timeout_seconds", 15)
    try:
        timeout = float(timeout_raw)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid timeout: {timeout_raw}") from None

    return RuntimeSettings(
        platform=platform,
        strategy=strategy,
        fs_mode=fs_mode,
        timeout=timeout,
        poll_interval=int(exe.get("poll_interval_ms", 50)) / 1000.0,
        max_output_bytes=int(exe.get("max_output_bytes", 1024 * 1024)),
        max_file_read_bytes=int(exe.get("max_file_read_bytes", 512 * 1024)),
        direct_fs_ops=bool(exe.get("direct_fs_ops", True)),
        max_lines=int(cfg.get_path("transcript.max_lines", MAX_LINES)),
        history_limit=int(cfg.get_path("system.history_limit", 500)),
    )


# -----------------------
# Data root + history file
# -----------------------


def get_data_root() -> Path:
    """Get the data root directory for Blaze Shell.

    Resolution order:
    1. BLAZE_DATA_HOME environment variable (if set)
    2. ~/.local/share (default)
    """
    blaze_data_home = os.getenv("BLAZE_DATA_HOME")
    if blaze_data_home:
        return Path(blaze_data_home)
    return Path.home() / ".local" / "share"


def crash_log_path(data_root: Path) -> Path:
    """<data_root>/blaze/logs/crash.log"""
    return data_root / "blaze" / "logs" / "crash.log"


def history_file_path(filename: str = HISTORY_FILENAME) -> Path:
    """Return the path to the command-history file.

    Stored at ``<user home>/.blaze_history``. The home directory comes from
    USERPROFILE, then HOME; if neither is set, the current working directory
    is used instead.
    """
    base = os.environ.get("USERPROFILE") or os.environ.get("HOME")
    if base:
        return Path(base) / filename
    try:
        return Path.cwd() / filename
    except OSError:
        return Path(filename)


# -----------------------
# Packaged defaults loading
# -----------------------


def _defaults_dir() -> Path:
    """Return the installed path to packaged defaults directory."""
    return Path(
        importlib_resources.files("blaze_shell.defaults")
    )  # type: ignore[arg-type]


def load_defaults_yaml(filename: str) -> dict[str, Any]:
    """
    Load a YAML file from blaze_shell/defaults/.
    """
    defaults_dir = _defaults_dir()
    path = defaults_dir / filename
    if not path.exists():
        raise FileNotFoundError(
            f"Missing defaults YAML: {filename} "
            f"(looked in {defaults_dir})"
        )

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(
            f"Defaults YAML {filename} must load to a mapping/dict."
        )
    return data


def load_system_config() -> YAMLConfig:
    """
    Load system.yaml from packaged defaults and return a YAMLConfig wrapper.
    """
    return YAMLConfig(load_defaults_yaml("system.yaml"))
