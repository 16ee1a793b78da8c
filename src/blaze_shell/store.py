# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
File-backed command history for Blaze Shell.

The history file is plain text, one command per line, append-only.
It is read once at session start (tail-limited) and appended to once
per submitted non-empty command. Failures never reach the user.
"""

from __future__ import annotations

from pathlib import Path

from .config import history_file_path
from .utils import split_output_lines


class FileHistoryStore:
    """File implementation of HistoryStore protocol."""

    def __init__(self, path: Path | None = None):
        """Initialize store with the history file path.

        Args:
            path: History file location (default: {home}/.blaze_history)
        """
        self.path = path if path is not None else history_file_path()

    def load(self, limit: int) -> list[str]:
        """Return up to ``limit`` most recent non-empty commands, oldest first.

        Any read failure yields an empty list.
        """
        if limit <= 0:
            return []
        try:
            content = self.path.read_text(encoding="utf-8", errors="replace")
        except (OSError, ValueError):
            return []

        lines = [line for line in split_output_lines(content) if line]
        return lines[-limit:]

    def append(self, command: str) -> None:
        """Append one command (best effort; errors are ignored)."""
        line = command.replace("\r", " ").replace("\n", " ")
        if not line.strip():
            return
        try:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except (OSError, ValueError):
            pass
