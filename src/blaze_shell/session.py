# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Per-session state owned by the kernel.

- cwd changes only through a successful ``cd``
- command_history is append-only during a session
- history_cursor is transient Up/Down navigation state
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class Session:
    cwd: str = field(default_factory=os.getcwd)
    command_history: list[str] = field(default_factory=list)
    history_cursor: int | None = None
    running: bool = False

    def record(self, command: str) -> None:
        """Append a submitted command and stop navigating."""
        self.command_history.append(command)
        self.history_cursor = None

    def history_previous(self) -> str | None:
        """Step back through history (Up). None when history is empty."""
        if not self.command_history:
            return None
        if self.history_cursor is None:
            self.history_cursor = len(self.command_history) - 1
        else:
            self.history_cursor = max(self.history_cursor - 1, 0)
        return self.command_history[self.history_cursor]

    def history_next(self) -> str | None:
        """Step forward through history (Down).

        Returns None when not navigating. Stepping past the newest entry
        ends navigation and returns an empty string (clears the input).
        """
        if self.history_cursor is None:
            return None
        nxt = self.history_cursor + 1
        if nxt >= len(self.command_history):
            self.history_cursor = None
            return ""
        self.history_cursor = nxt
        return self.command_history[nxt]
