# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Blaze Shell kernel.

Command router for one terminal session:
- tokenize the submitted line
- run builtins in-process
- deny anything outside the allowlist
- translate + execute allowed externals with the injected strategy
- append every resulting line to the bounded transcript

Important boundary:
- Kernel does not load YAML or pick a platform itself; create_kernel()
  resolves settings once at startup and injects the collaborators.

Threading:
- dispatch() runs handle_command() on a single dedicated worker thread,
  so one command executes at a time and the UI thread stays free.
- The transcript (LineBuffer) is lock-guarded; the UI reads snapshots
  or subscribes via on_append / on_clear.
"""

from __future__ import annotations

import traceback
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime

from . import config as cfg_module
from .builtins import BUILTIN_COMMANDS, BuiltinHandler
from .completion import TabCompleter
from .config import RuntimeSettings, Strategy, YAMLConfig
from .executor import BlockingExecutor, StreamingExecutor
from .interfaces import ConfigModel, Executor, HistoryStore
from .policy import Allowlist
from .session import Session
from .store import FileHistoryStore
from .transcript import LineBuffer, TranscriptEntry
from .translator import PlatformTranslator, TranslationError
from .utils import split_args


def write_crash_log(
    error: Exception,
    cwd: str = "",
    raw_command: str = "",
    program: str = "",
) -> None:
    """Write an entry to the crash log.

    Logs unhandled exceptions raised while routing a command.
    Only creates the log directory when actually needed.
    Appends to crash.log (never overwrites).
    """
    try:
        log_path = cfg_module.crash_log_path(cfg_module.get_data_root())

        # Create logs directory only when we need to write
        log_path.parent.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().isoformat()
        lines = [timestamp]

        if cwd:
            lines.append(f"cwd={cwd}")
        if raw_command:
            lines.append(f"raw={raw_command}")
        if program:
            lines.append(f"program={program}")

        lines.append(f"error={type(error).__name__}: {error}")
        lines.append("traceback:")
        lines.append(
            "".join(traceback.format_exception(
                type(error), error, error.__traceback__
            ))
        )
        lines.append("----")

        with log_path.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

    except Exception:
        # If we can't write the crash log, fail silently
        # (we're already in an error state)
        pass


def denial_message(name: str) -> str:
    return (
        f"Command '{name}' is not allowed. "
        f"Type 'help' for a list of available commands."
    )


@dataclass
class Kernel:
    """Blaze Shell session engine."""

    allowlist: Allowlist
    translator: PlatformTranslator
    executor: Executor
    history_store: HistoryStore
    config: ConfigModel | None = None

    buffer: LineBuffer = field(default_factory=LineBuffer)
    session: Session = field(default_factory=Session)
    history_limit: int = 500

    # Derived in __post_init__
    builtins: BuiltinHandler = field(init=False)
    completer: TabCompleter = field(init=False)

    _worker: ThreadPoolExecutor | None = field(
        default=None, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self.builtins = BuiltinHandler(self.allowlist, self.config)
        self.completer = TabCompleter(
            [*BUILTIN_COMMANDS, *self.allowlist.allowed_commands()]
        )

    # -----------------------
    # Session
    # -----------------------

    @property
    def running(self) -> bool:
        return self.session.running

    def start(self, show_banner: bool = True) -> None:
        """Start a session: reload persisted history, write the banner."""
        self.session.running = True
        self.session.command_history = self.history_store.load(
            self.history_limit
        )
        self.session.history_cursor = None

        if show_banner:
            self.buffer.append_many(
                TranscriptEntry.system(line) for line in self.banner_lines()
            )

    def banner_lines(self) -> list[str]:
        if self.config is None:
            return []
        banner = self.config.get_path("system.banner", [])
        if not isinstance(banner, list):
            return []
        return [str(line) for line in banner]

    def prompt(self) -> str:
        return f"{self.session.cwd} >"

    # -----------------------
    # Command handling
    # -----------------------

    def handle_command(self, line: str) -> None:
        """Handle a single submitted line; results land in the buffer."""
        command = line.strip()
        if not command:
            return

        self.session.record(command)
        self.history_store.append(command)
        self.buffer.append(
            TranscriptEntry.command(f"{self.session.cwd} > {command}")
        )

        try:
            self._route(command)
        except Exception as e:
            write_crash_log(e, cwd=self.session.cwd, raw_command=command)
            self.buffer.append(
                TranscriptEntry.error(
                    f"Error: {type(e).__name__}: {e}"
                )
            )

    def _route(self, command: str) -> None:
        argv = split_args(command)
        if not argv:
            return

        result = self.builtins.handle(argv, self.session)
        if result is not None:
            if result.clear_screen:
                self.buffer.clear()
            self.buffer.append_many(result.entries)
            if result.exit_session:
                self.session.running = False
            return

        name = argv[0].lower()
        if not self.allowlist.is_allowed(name):
            self.buffer.append(TranscriptEntry.error(denial_message(name)))
            return

        try:
            request = self.translator.translate(name, argv[1:], self.session.cwd)
        except TranslationError as e:
            self.buffer.append(TranscriptEntry.error(f"{name}: {e}"))
            return
        self.executor.execute(request, self.buffer.append)

    def dispatch(self, line: str) -> Future[None]:
        """Run handle_command() on the kernel's worker thread."""
        if self._worker is None:
            self._worker = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="blaze-exec"
            )
        return self._worker.submit(self.handle_command, line)

    def shutdown(self) -> None:
        if self._worker is not None:
            self._worker.shutdown(wait=True)
            self._worker = None

    # -----------------------
    # UI helper hooks
    # -----------------------

    def complete(self, text: str, cycle_index: int) -> str | None:
        return self.completer.complete(text, self.session.cwd, cycle_index)

    def history_previous(self) -> str | None:
        return self.session.history_previous()

    def history_next(self) -> str | None:
        return self.session.history_next()


def build_executor(settings: RuntimeSettings) -> Executor:
    """Pick the execution strategy chosen at startup."""
    if settings.strategy is Strategy.BLOCKING:
        return BlockingExecutor(
            timeout=settings.timeout,
            poll_interval=settings.poll_interval,
            max_output_bytes=settings.max_output_bytes,
            max_file_read_bytes=settings.max_file_read_bytes,
            direct_fs_ops=settings.direct_fs_ops,
        )
    return StreamingExecutor()


def create_kernel(
    cfg: YAMLConfig | None = None,
    settings: RuntimeSettings | None = None,
    history_store: HistoryStore | None = None,
    executor: Executor | None = None,
) -> Kernel:
    """Explicit wiring: config + policy + translator + executor + store."""
    if cfg is None:
        cfg = cfg_module.load_system_config()
    if settings is None:
        settings = cfg_module.resolve_runtime(cfg)
    if history_store is None:
        filename = str(
            cfg.get_path("system.history_file", cfg_module.HISTORY_FILENAME)
        )
        history_store = FileHistoryStore(
            cfg_module.history_file_path(filename)
        )

    return Kernel(
        allowlist=Allowlist.from_config(cfg, settings.platform, settings.fs_mode),
        translator=PlatformTranslator.from_config(cfg, settings.platform),
        executor=executor if executor is not None else build_executor(settings),
        history_store=history_store,
        config=cfg,
        buffer=LineBuffer(settings.max_lines),
        history_limit=settings.history_limit,
    )
