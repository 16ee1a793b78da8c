# Blaze Shell — Embedded Command-Shell Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
External command execution strategies for Blaze Shell.

This module provides:
- BlockingExecutor: spawn, poll liveness on a fixed interval up to a
  wall-clock timeout, then report combined stdout+stderr capped at
  max_output_bytes. Used where process lifetime must be controlled
  precisely (Windows desktop mode). Can serve a few read-only commands
  (ls/dir, cat/type, grep, whoami, echo) in-process.
- StreamingExecutor: asyncio subprocess with separate pipes; each line
  is forwarded as soon as it arrives (Unix desktop mode).

Neither strategy runs a shell over user text: requests arrive already
tokenized and translated (see translator.py).
"""

from __future__ import annotations

import asyncio
import os
import subprocess
import sys
import threading
import time
from collections.abc import Callable
from pathlib import Path

from .transcript import EntryKind, TranscriptEntry
from .translator import ExecutionRequest
from .utils import decode_output, split_output_lines

Emit = Callable[[TranscriptEntry], None]

MAX_OUTPUT_BYTES = 1024 * 1024
MAX_FILE_READ_BYTES = 512 * 1024
TRUNCATION_MARKER = b"\n...(output truncated)\n"
STREAM_LINE_LIMIT = 1024 * 1024

DIRECT_OPS = frozenset({"ls", "dir", "cat", "type", "grep", "whoami", "echo", "vim"})


def _os_reason(error: BaseException) -> str:
    reason = getattr(error, "strerror", None)
    return reason if reason else str(error)


def _creation_flags() -> int:
    """Suppress console windows for spawned processes on Windows."""
    if sys.platform.startswith("win"):
        return getattr(subprocess, "CREATE_NO_WINDOW", 0x08000000)
    return 0


def _chunk_text(raw: bytes) -> str:
    text = decode_output(raw)
    if text.endswith("\n"):
        text = text[:-1]
    return text[:-1] if text.endswith("\r") else text


def _format_seconds(seconds: float) -> str:
    return f"{seconds:g}s"


class BlockingExecutor:
    """Blocking-with-timeout implementation of the Executor protocol."""

    def __init__(
        self,
        timeout: float = 15.0,
        poll_interval: float = 0.05,
        max_output_bytes: int = MAX_OUTPUT_BYTES,
        max_file_read_bytes: int = MAX_FILE_READ_BYTES,
        direct_fs_ops: bool = True,
    ):
        """Initialize executor with configuration.

        Args:
            timeout: Wall-clock limit in seconds before the process is killed
            poll_interval: Seconds between liveness checks
            max_output_bytes: Cap on combined stdout+stderr kept
            max_file_read_bytes: Cap on in-process file reads (cat/type, grep)
            direct_fs_ops: Serve read-only commands in-process
        """
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_output_bytes = max_output_bytes
        self.max_file_read_bytes = max_file_read_bytes
        self.direct_fs_ops = direct_fs_ops

    def execute(self, request: ExecutionRequest, emit: Emit) -> int | None:
        """Run a request to completion and emit its transcript lines.

        Returns:
            The exit code, or None if the process never ran to completion
            (spawn failure or timeout). Direct operations return 0 on
            success and 1 on failure.
        """
        if self.direct_fs_ops and request.name in DIRECT_OPS:
            return self._run_direct(request, emit)
        return self._run_process(request, emit)

    # ----------------------------------------------------------------
    # Process execution
    # ----------------------------------------------------------------

    def _run_process(self, request: ExecutionRequest, emit: Emit) -> int | None:
        name = request.display_name

        try:
            proc = subprocess.Popen(
                request.popen_args(),
                cwd=request.working_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                creationflags=_creation_flags(),
            )
        except (OSError, ValueError) as e:
            emit(TranscriptEntry.error(f"{name}: {_os_reason(e)}"))
            return None

        assert proc.stdout is not None

        captured = bytearray()
        truncated = False
        cap = max(0, int(self.max_output_bytes))

        def _reader(pipe) -> None:
            nonlocal truncated
            try:
                for chunk in iter(lambda: pipe.read1(8192), b""):
                    remaining = cap - len(captured)
                    if remaining <= 0:
                        # Keep draining so the child never blocks on a full pipe
                        truncated = True
                        continue
                    if len(chunk) > remaining:
                        captured.extend(chunk[:remaining])
                        truncated = True
                    else:
                        captured.extend(chunk)
            except (OSError, ValueError):
                pass
            finally:
                try:
                    pipe.close()
                except OSError:
                    pass

        reader = threading.Thread(target=_reader, args=(proc.stdout,), daemon=True)
        reader.start()

        deadline = time.monotonic() + self.timeout
        timed_out = False
        while proc.poll() is None:
            if time.monotonic() >= deadline:
                timed_out = True
                break
            time.sleep(self.poll_interval)

        if timed_out:
            try:
                proc.kill()
            except OSError:
                pass
            try:
                proc.wait(timeout=1.0)
            except subprocess.TimeoutExpired:
                pass
            reader.join(timeout=0.5)
            emit(TranscriptEntry.error(
                f"{name}: timed out after {_format_seconds(self.timeout)}"
            ))
            return None

        # A grandchild holding the pipe open must not outlive the budget
        reader.join(timeout=self.timeout)

        data = bytes(captured)
        if truncated:
            data += TRUNCATION_MARKER

        kind = EntryKind.OUTPUT if proc.returncode == 0 else EntryKind.ERROR
        lines = split_output_lines(decode_output(data))
        if not lines:
            lines = [""]
        for line in lines:
            emit(TranscriptEntry(line, kind))
        return proc.returncode

    # ----------------------------------------------------------------
    # Direct (in-process) operations
    # ----------------------------------------------------------------

    def _run_direct(self, request: ExecutionRequest, emit: Emit) -> int:
        name = request.name
        args = list(request.args)
        cwd = request.working_dir

        if name in ("ls", "dir"):
            operands = [a for a in args if not a.startswith("-")]
            target = operands[0] if operands else "."
            return self._list_dir(name, target, _resolve(cwd, target), emit)

        if name in ("cat", "type"):
            if not args:
                emit(TranscriptEntry.error(f"Usage: {name} <file>"))
                return 1
            return self._read_file(name, args[0], _resolve(cwd, args[0]), emit)

        if name == "grep":
            if len(args) < 2:
                emit(TranscriptEntry.error("Usage: grep <pattern> <file>"))
                return 1
            return self._grep_file(args[0], args[1], _resolve(cwd, args[1]), emit)

        if name == "whoami":
            user = (
                os.environ.get("USERNAME")
                or os.environ.get("USER")
                or "unknown"
            )
            emit(TranscriptEntry.output(user))
            return 0

        if name == "echo":
            emit(TranscriptEntry.output(" ".join(args)))
            return 0

        # vim
        emit(TranscriptEntry.error(
            "vim is not supported in this UI (interactive TTY required)."
        ))
        return 1

    def _list_dir(self, name: str, shown: str, path: Path, emit: Emit) -> int:
        try:
            names = sorted(entry.name for entry in os.scandir(path))
        except OSError as e:
            emit(TranscriptEntry.error(f"{name}: {shown}: {_os_reason(e)}"))
            return 1

        entries = [
            TranscriptEntry.output(f" Directory of {path}"),
            TranscriptEntry.output(""),
        ]
        used = 0
        for n in names:
            used += len(n.encode("utf-8", errors="replace")) + 1
            if used > self.max_output_bytes:
                entries.append(TranscriptEntry.output("...(output truncated)"))
                break
            entries.append(TranscriptEntry.output(n))
        for entry in entries:
            emit(entry)
        return 0

    def _read_capped(self, path: Path) -> tuple[bytes, bool]:
        cap = max(0, int(self.max_file_read_bytes))
        with path.open("rb") as f:
            data = f.read(cap)
            truncated = bool(f.read(1))
        return data, truncated

    def _read_file(self, name: str, shown: str, path: Path, emit: Emit) -> int:
        try:
            data, truncated = self._read_capped(path)
        except OSError as e:
            emit(TranscriptEntry.error(f"{name}: {shown}: {_os_reason(e)}"))
            return 1

        for line in split_output_lines(decode_output(data)):
            emit(TranscriptEntry.output(line))
        if truncated:
            emit(TranscriptEntry.output("...(output truncated)"))
        return 0

    def _grep_file(
        self, pattern: str, shown: str, path: Path, emit: Emit
    ) -> int:
        try:
            data, _truncated = self._read_capped(path)
        except OSError as e:
            emit(TranscriptEntry.error(f"grep: {shown}: {_os_reason(e)}"))
            return 1

        matched = False
        for idx, line in enumerate(split_output_lines(decode_output(data)), 1):
            if pattern in line:
                matched = True
                emit(TranscriptEntry.output(f"{idx}:{line}"))

        if not matched:
            emit(TranscriptEntry.output("(no matches)"))
        return 0


def _resolve(cwd: str, target: str) -> Path:
    path = Path(target)
    if path.is_absolute():
        return path
    return Path(cwd) / path


class StreamingExecutor:
    """Streaming implementation of the Executor protocol.

    One asyncio task per pipe pushes lines into a queue; the coordinating
    coroutine drains the queue and emits entries as they arrive. Only
    same-stream order is preserved.
    """

    def __init__(self, line_limit: int = STREAM_LINE_LIMIT):
        self.line_limit = line_limit

    def execute(self, request: ExecutionRequest, emit: Emit) -> int | None:
        """Synchronous entry point (runs its own event loop).

        Must be called from a thread without a running event loop, e.g.
        the kernel's worker thread. Inside a loop, await stream() instead.
        """
        return asyncio.run(self.stream(request, emit))

    async def stream(self, request: ExecutionRequest, emit: Emit) -> int | None:
        name = request.display_name

        try:
            proc = await asyncio.create_subprocess_exec(
                *request.argv(),
                cwd=request.working_dir,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=self.line_limit,
                creationflags=_creation_flags(),
            )
        except (OSError, ValueError) as e:
            emit(TranscriptEntry.error(f"{name}: {_os_reason(e)}"))
            return None

        queue: asyncio.Queue[TranscriptEntry | None] = asyncio.Queue()

        async def _pump(reader: asyncio.StreamReader, kind: EntryKind) -> None:
            # After an over-limit chunk the rest of that line is still due;
            # its bare terminator must not become an extra blank entry.
            continuing = False
            try:
                while True:
                    try:
                        raw = await reader.readuntil(b"\n")
                    except asyncio.IncompleteReadError as e:
                        if e.partial:
                            await queue.put(TranscriptEntry(_chunk_text(e.partial), kind))
                        break
                    except asyncio.LimitOverrunError as e:
                        chunk = await reader.readexactly(e.consumed)
                        await queue.put(TranscriptEntry(_chunk_text(chunk), kind))
                        continuing = True
                        continue
                    text = _chunk_text(raw)
                    if not (continuing and not text):
                        await queue.put(TranscriptEntry(text, kind))
                    continuing = False
            finally:
                await queue.put(None)

        assert proc.stdout is not None
        assert proc.stderr is not None
        tasks = [
            asyncio.create_task(_pump(proc.stdout, EntryKind.OUTPUT)),
            asyncio.create_task(_pump(proc.stderr, EntryKind.ERROR)),
        ]

        open_streams = len(tasks)
        while open_streams:
            item = await queue.get()
            if item is None:
                open_streams -= 1
                continue
            emit(item)

        await asyncio.gather(*tasks)
        return await proc.wait()
