"""
Admission gate: quiet time first, then the lock file, then lock acquisition.

Waiting is scheduled polling, not error handling; nothing here retries a failure.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime

from dvr_pipeline.jobs.context import JobContext
from dvr_pipeline.runtime.lockfile import LockFile, LockHandle
from dvr_pipeline.runtime.quiet_time import parse_quiet_time
from dvr_pipeline.utils.waiting import wait_until


def _current_hour() -> int:
    return datetime.now().hour


def lock_for(ctx: JobContext) -> LockFile:
    return LockFile(path=ctx.settings.lock_path, stale_after_s=ctx.settings.stale_lock_seconds)


def wait_for_quiet_time(
    ctx: JobContext,
    *,
    now_hour: Callable[[], int] = _current_hour,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    name = ctx.job.name
    ctx.log.debug("quiet_time_check")
    window = None if ctx.options.ignore_quiet_time else parse_quiet_time(ctx.options.quiet_time)
    if window is None:
        ctx.log.info("quiet_time_unset", file=name)
        return

    if not window.is_quiet(now_hour()):
        ctx.log.info("quiet_time_outside", file=name, quiet_time=str(window))
        return

    ctx.log.info("quiet_time_wait", file=name, quiet_time=str(window))
    interval = float(ctx.settings.quiet_poll_sec)
    wait_until(
        lambda: not window.is_quiet(now_hour()),
        interval_s=interval,
        on_wait=lambda: ctx.log.debug("quiet_time_sleep", file=name, sleep_s=interval),
        sleep=sleep,
    )
    ctx.log.info("quiet_time_over", file=name)


def wait_for_lock(
    ctx: JobContext,
    lock: LockFile,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    name = ctx.job.name
    if not lock.exists():
        ctx.log.debug("lock_absent")
        return

    # Staleness is only judged on first sight; afterwards we wait for removal.
    if lock.is_stale():
        ctx.log.warning("lock_stale_deleted", lock=str(lock.path))
        lock.remove()
        return

    interval = float(ctx.settings.lock_poll_sec)
    ctx.log.info("lock_wait", lock=str(lock.path), sleep_s=interval)
    wait_until(
        lambda: not lock.exists(),
        interval_s=interval,
        on_wait=lambda: ctx.log.debug("lock_sleep", file=name, sleep_s=interval),
        sleep=sleep,
    )
    ctx.log.info("lock_gone")


def wait_for_admission(
    ctx: JobContext,
    lock: LockFile,
    *,
    now_hour: Callable[[], int] = _current_hour,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    wait_for_quiet_time(ctx, now_hour=now_hour, sleep=sleep)
    wait_for_lock(ctx, lock, sleep=sleep)


def take_lock(ctx: JobContext, lock: LockFile) -> LockHandle:
    ctx.log.info("lock_create", file=ctx.job.name, lock=str(lock.path))
    return lock.acquire(ctx.job.name)


def admit(
    ctx: JobContext,
    lock: LockFile | None = None,
    *,
    now_hour: Callable[[], int] = _current_hour,
    sleep: Callable[[float], None] = time.sleep,
) -> LockHandle:
    """
    Block until the job may run, then take the lock.
    Raises LockAcquireError if the lock cannot be created.
    """
    lock = lock or lock_for(ctx)
    wait_for_admission(ctx, lock, now_hour=now_hour, sleep=sleep)
    return take_lock(ctx, lock)
