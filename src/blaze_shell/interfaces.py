# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Protocol definitions for dependency injection.

These interfaces enable clean separation between the kernel (command
router), history persistence, and command execution, so either execution
strategy can be injected and tested on any host.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .transcript import TranscriptEntry  # pragma: no cover
    from .translator import ExecutionRequest  # pragma: no cover


class HistoryStore(Protocol):
    """Protocol for command-history persistence."""

    def load(self, limit: int) -> list[str]:
        """Return up to ``limit`` most recent commands, oldest first.

        Never raises; returns [] on read failure.
        """
        ...

    def append(self, command: str) -> None:
        """Persist one command (best effort, never raises)."""
        ...


class Executor(Protocol):
    """Protocol for external command execution."""

    def execute(
        self,
        request: ExecutionRequest,
        emit: Callable[[TranscriptEntry], None],
    ) -> int | None:
        """Run the request, emitting transcript lines as they are produced.

        Returns:
            exit code, or None if the process did not run to completion
        """
        ...


class ConfigModel(Protocol):
    """Protocol for configuration access."""

    @property
    def system(self) -> dict[str, Any]:
        """System configuration (name, banner, history)."""
        ...

    @property
    def execution(self) -> dict[str, Any]:
        """Execution configuration."""
        ...

    @property
    def help(self) -> dict[str, Any]:
        """Help text configuration."""
        ...

    def get_path(self, path: str, default: Any = None) -> Any:
        """Nested dot-path lookup."""
        ...
