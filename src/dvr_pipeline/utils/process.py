"""
Child-process runner for the external media tools.

- list argv only (no shell)
- stdout/stderr are read incrementally on reader threads; the last lines of each
  stream are kept for classification and diagnostics
- exit status is classified into a ProcessResult, never raised
- environment overrides apply to the child only
"""

from __future__ import annotations

import os
import queue
import re
import subprocess
import threading
import time
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from contextlib import suppress
from dataclasses import dataclass
from typing import IO, Any

_EOF = object()


@dataclass(frozen=True, slots=True)
class BenignExit:
    """A nonzero exit that means "nothing to do" rather than failure."""

    code: int
    marker: re.Pattern[str] | None = None

    def matches(self, code: int | None, output: str) -> bool:
        if code != self.code:
            return False
        if self.marker is None:
            return True
        return self.marker.search(output) is not None


@dataclass(frozen=True, slots=True)
class ProcessResult:
    tool: str
    argv: tuple[str, ...]
    ok: bool
    code: int | None
    stdout_tail: tuple[str, ...] = ()
    stderr_tail: tuple[str, ...] = ()
    spawn_error: str | None = None
    benign: bool = False

    @property
    def spawned(self) -> bool:
        return self.spawn_error is None

    @property
    def output_tail(self) -> str:
        return "\n".join(self.stdout_tail + self.stderr_tail)


ToolRunner = Callable[..., ProcessResult]


def child_env(overrides: Mapping[str, str | None] | None) -> dict[str, str] | None:
    """
    Build the child's environment from ours plus overrides; None unsets a var.
    Returns None (inherit unchanged) when there is nothing to override.
    """
    if not overrides:
        return None
    env = dict(os.environ)
    for key, value in overrides.items():
        if value is None:
            env.pop(key, None)
        else:
            env[key] = str(value)
    return env


class CheckIn:
    """
    Periodic "still running" report that only fires when the output changed.
    """

    def __init__(
        self,
        *,
        interval_s: float,
        emit: Callable[[str], None],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval_s = float(interval_s)
        self._emit = emit
        self._clock = clock
        self._next_at = clock() + self.interval_s
        self._last_reported: str | None = None
        self.cancelled = False

    def poll(self, latest: str | None) -> bool:
        if self.cancelled or self._clock() < self._next_at:
            return False
        self._next_at = self._clock() + self.interval_s
        if not latest or latest == self._last_reported:
            return False
        self._last_reported = latest
        self._emit(latest)
        return True

    def cancel(self) -> None:
        self.cancelled = True


def _pump(stream: IO[str], name: str, q: queue.Queue) -> None:
    try:
        for line in stream:
            q.put((name, line.rstrip("\r\n")))
    except (ValueError, OSError):
        # Pipe closed underneath us (process killed).
        pass
    finally:
        q.put((name, _EOF))


def _terminate(proc: subprocess.Popen) -> None:
    # Graceful terminate first, then SIGKILL
    with suppress(Exception):
        proc.terminate()
    try:
        proc.wait(timeout=5.0)
    except subprocess.TimeoutExpired:
        with suppress(Exception):
            proc.kill()
        with suppress(Exception):
            proc.wait(timeout=5.0)


def run_tool(
    tool: str,
    argv: Sequence[str],
    *,
    log: Any,
    benign: Sequence[BenignExit] = (),
    env_overrides: Mapping[str, str | None] | None = None,
    checkin_s: float | None = None,
    stream_output: bool = False,
    tail_lines: int = 50,
    clock: Callable[[], float] = time.monotonic,
) -> ProcessResult:
    """
    Run one tool invocation to completion and classify how it ended.

    `checkin_s` enables the periodic check-in (verbose mode); `stream_output`
    logs every output line at debug level.
    """
    args = tuple(str(a) for a in argv)
    log.debug("tool_spawn", tool=tool, argv=list(args))
    try:
        proc = subprocess.Popen(
            list(args),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            env=child_env(env_overrides),
        )
    except OSError as ex:
        log.error("tool_spawn_failed", tool=tool, error=str(ex))
        return ProcessResult(tool=tool, argv=args, ok=False, code=None, spawn_error=str(ex))

    tails: dict[str, deque[str]] = {
        "stdout": deque(maxlen=int(tail_lines)),
        "stderr": deque(maxlen=int(tail_lines)),
    }
    q: queue.Queue = queue.Queue()
    readers = [
        threading.Thread(target=_pump, args=(proc.stdout, "stdout", q), daemon=True),
        threading.Thread(target=_pump, args=(proc.stderr, "stderr", q), daemon=True),
    ]
    for t in readers:
        t.start()

    checkin = None
    if checkin_s:
        checkin = CheckIn(
            interval_s=float(checkin_s),
            emit=lambda latest: log.info("tool_checkin", tool=tool, latest=latest),
            clock=clock,
        )
    latest: str | None = None
    open_streams = len(readers)
    wait_s = min(1.0, float(checkin_s)) if checkin_s else 1.0

    try:
        while open_streams:
            try:
                name, line = q.get(timeout=wait_s)
            except queue.Empty:
                name, line = None, None
            if line is _EOF:
                open_streams -= 1
            elif line is not None:
                tails[name].append(line)
                if line.strip():
                    latest = line
                if stream_output:
                    log.debug("tool_output", tool=tool, stream=name, line=line)
            if checkin is not None:
                checkin.poll(latest)
        code = proc.wait()
    except BaseException:
        _terminate(proc)
        raise
    finally:
        if checkin is not None:
            checkin.cancel()
        for t in readers:
            t.join(timeout=2.0)

    stdout_tail = tuple(tails["stdout"])
    stderr_tail = tuple(tails["stderr"])
    output = "\n".join(stdout_tail + stderr_tail)
    if code == 0:
        ok, is_benign = True, False
    else:
        is_benign = any(b.matches(code, output) for b in benign)
        ok = is_benign
    log.debug("tool_exit", tool=tool, code=code, ok=ok, benign=is_benign)
    return ProcessResult(
        tool=tool,
        argv=args,
        ok=ok,
        code=code,
        stdout_tail=stdout_tail,
        stderr_tail=stderr_tail,
        benign=is_benign,
    )
