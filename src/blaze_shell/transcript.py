# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Transcript entries and the bounded line buffer that drives the UI.

The buffer is the only owner of entries once appended. Writers (the
command path) and readers (UI rendering) share it through a lock;
readers take an immutable snapshot.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from .config import MAX_LINES


class EntryKind(Enum):
    """How a transcript line should be styled."""
    COMMAND = "command"
    OUTPUT = "output"
    ERROR = "error"
    SYSTEM = "system"


@dataclass(frozen=True)
class TranscriptEntry:
    content: str
    kind: EntryKind

    @classmethod
    def output(cls, content: str) -> TranscriptEntry:
        return cls(content, EntryKind.OUTPUT)

    @classmethod
    def error(cls, content: str) -> TranscriptEntry:
        return cls(content, EntryKind.ERROR)

    @classmethod
    def system(cls, content: str) -> TranscriptEntry:
        return cls(content, EntryKind.SYSTEM)

    @classmethod
    def command(cls, content: str) -> TranscriptEntry:
        return cls(content, EntryKind.COMMAND)


class LineBuffer:
    """Ordered, capped collection of transcript entries.

    Invariants:
    - insertion order is display order
    - len(buffer) <= max_lines; overflow evicts the oldest entries
    """

    def __init__(self, max_lines: int = MAX_LINES):
        if max_lines < 1:
            raise ValueError("max_lines must be at least 1")
        self.max_lines = max_lines
        self._lines: list[TranscriptEntry] = []
        self._lock = threading.Lock()

        # Subscription hooks (wired by UI/CLI), called outside the lock.
        self.on_append: Callable[[TranscriptEntry], None] | None = None
        self.on_clear: Callable[[], None] | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)

    def _trim(self) -> None:
        excess = len(self._lines) - self.max_lines
        if excess > 0:
            del self._lines[:excess]

    def append(self, entry: TranscriptEntry) -> None:
        with self._lock:
            self._lines.append(entry)
            self._trim()
        if self.on_append is not None:
            self.on_append(entry)

    def append_many(self, entries: Iterable[TranscriptEntry]) -> None:
        added = list(entries)
        if not added:
            return
        with self._lock:
            self._lines.extend(added)
            self._trim()
        if self.on_append is not None:
            for entry in added:
                self.on_append(entry)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()
        if self.on_clear is not None:
            self.on_clear()

    def snapshot(self) -> tuple[TranscriptEntry, ...]:
        """Return a consistent, immutable view of the current lines."""
        with self._lock:
            return tuple(self._lines)
