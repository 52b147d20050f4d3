"""
SIGINT/SIGTERM handling for one job.

- interruptible(): a signal raises InterruptedFailure where the job is
- deferred_interrupts(): a signal is held until the block exits, then raised
- uninterruptible(): signals are ignored (finalization)
"""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from dvr_pipeline.errors import InterruptedFailure

_HANDLED_SIGNALS = tuple(
    s for s in (getattr(signal, "SIGINT", None), getattr(signal, "SIGTERM", None)) if s is not None
)


def _raise_interrupted(signum: int, _frame: Any) -> None:
    raise InterruptedFailure(signal.Signals(signum).name)


@contextmanager
def _signal_handlers(handler: Any) -> Iterator[None]:
    # signal.signal only works on the main thread
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = {s: signal.signal(s, handler) for s in _HANDLED_SIGNALS}
    try:
        yield
    finally:
        for s, h in previous.items():
            signal.signal(s, h)


def interruptible() -> Any:
    return _signal_handlers(_raise_interrupted)


def uninterruptible() -> Any:
    return _signal_handlers(signal.SIG_IGN)


@contextmanager
def deferred_interrupts() -> Iterator[None]:
    """
    Hold SIGINT/SIGTERM while the block runs. Assignments made inside the block
    are complete before the InterruptedFailure for a held signal is raised.
    """
    pending: list[int] = []
    with _signal_handlers(lambda signum, _frame: pending.append(signum)):
        yield
    if pending:
        raise InterruptedFailure(signal.Signals(pending[0]).name)
