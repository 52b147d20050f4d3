from __future__ import annotations

import time
from collections.abc import Callable


class WaitTimeout(TimeoutError):
    pass


def wait_until(
    predicate: Callable[[], bool],
    *,
    interval_s: float,
    deadline_s: float | None = None,
    on_wait: Callable[[], None] | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """
    Poll `predicate` every `interval_s` seconds until it returns True.

    The predicate is checked once before the first sleep. `on_wait` runs before
    each sleep (progress logging). Sleeping happens on the calling thread, so a
    signal handler that raises interrupts the wait. Raises WaitTimeout once
    `deadline_s` seconds have elapsed without the predicate passing.
    """
    started = clock()
    while not predicate():
        if deadline_s is not None and clock() - started >= float(deadline_s):
            raise WaitTimeout(f"condition not met within {deadline_s}s")
        if on_wait is not None:
            on_wait()
        sleep(float(interval_s))
