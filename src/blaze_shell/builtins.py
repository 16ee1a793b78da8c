# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
In-process builtin commands: help, clear/cls, cd, pwd, exit.

No builtin ever spawns a process. Each handler returns a BuiltinResult;
the kernel applies clear_screen / exit_session and appends the entries.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .config import FsMode
from .interfaces import ConfigModel
from .policy import Allowlist
from .session import Session
from .transcript import TranscriptEntry

BUILTIN_COMMANDS: tuple[str, ...] = ("help", "clear", "cls", "cd", "pwd", "exit")

DEFAULT_HELP_HEADER = "⚡ Blaze Terminal — Commands:"
DEFAULT_HELP_LINES = (
    "  help            Show this help message",
    "  clear / cls     Clear terminal output",
    "  cd <dir>        Change directory",
    "  pwd             Print working directory",
    "  exit            Exit the terminal",
)


@dataclass(frozen=True)
class BuiltinResult:
    entries: list[TranscriptEntry] = field(default_factory=list)
    clear_screen: bool = False
    exit_session: bool = False


def strip_verbatim_prefix(path: str) -> str:
    r"""Drop the Windows extended-length prefix (\\?\) for display."""
    if path.startswith("\\\\?\\UNC\\"):
        return "\\\\" + path[len("\\\\?\\UNC\\"):]
    if path.startswith("\\\\?\\"):
        return path[len("\\\\?\\"):]
    return path


class BuiltinHandler:
    """Dispatches builtins by first token (case-insensitive)."""

    def __init__(self, allowlist: Allowlist, config: ConfigModel | None = None):
        self.allowlist = allowlist
        self.config = config
        self._handlers = {
            "help": self._handle_help,
            "clear": self._handle_clear,
            "cls": self._handle_clear,
            "pwd": self._handle_pwd,
            "cd": self._handle_cd,
            "exit": self._handle_exit,
        }

    @property
    def names(self) -> tuple[str, ...]:
        return BUILTIN_COMMANDS

    def is_builtin(self, name: str) -> bool:
        return name.lower() in self._handlers

    def handle(self, argv: list[str], session: Session) -> BuiltinResult | None:
        """Run the builtin named by argv[0], or return None if not a builtin."""
        if not argv:
            return None
        handler = self._handlers.get(argv[0].lower())
        if handler is None:
            return None
        return handler(argv, session)

    # -----------------------
    # Handlers
    # -----------------------

    def _handle_help(self, argv: list[str], session: Session) -> BuiltinResult:
        return BuiltinResult(
            entries=[TranscriptEntry.system(line) for line in self.help_lines()]
        )

    def _handle_clear(self, argv: list[str], session: Session) -> BuiltinResult:
        return BuiltinResult(clear_screen=True)

    def _handle_pwd(self, argv: list[str], session: Session) -> BuiltinResult:
        return BuiltinResult(entries=[TranscriptEntry.output(session.cwd)])

    def _handle_exit(self, argv: list[str], session: Session) -> BuiltinResult:
        return BuiltinResult(exit_session=True)

    def _handle_cd(self, argv: list[str], session: Session) -> BuiltinResult:
        rest = " ".join(argv[1:])
        if not rest:
            return BuiltinResult(entries=[TranscriptEntry.output(session.cwd)])

        target = Path(rest)
        if not target.is_absolute():
            target = Path(session.cwd) / target

        try:
            resolved = target.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            reason = getattr(e, "strerror", None) or str(e)
            return BuiltinResult(
                entries=[TranscriptEntry.error(f"cd: {rest}: {reason}")]
            )

        if not resolved.is_dir():
            return BuiltinResult(
                entries=[TranscriptEntry.error(f"Not a directory: {rest}")]
            )

        session.cwd = strip_verbatim_prefix(os.fspath(resolved))
        return BuiltinResult()

    # -----------------------
    # Help text
    # -----------------------

    def help_lines(self) -> list[str]:
        header = DEFAULT_HELP_HEADER
        body: list[str] = list(DEFAULT_HELP_LINES)
        if self.config is not None:
            help_cfg = self.config.help
            header = str(help_cfg.get("header", header))
            cfg_lines = help_cfg.get("lines")
            if isinstance(cfg_lines, list):
                body = [str(line) for line in cfg_lines]

        label = "Allowed system commands"
        if self.allowlist.fs_mode is FsMode.SAFE:
            label += " (safe mode)"
        allowed = ", ".join(self.allowlist.allowed_commands())

        return [header, "", *body, "", f"{label}: {allowed}."]
