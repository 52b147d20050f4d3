"""
Job coordinator: admission -> stages -> finalization.

Finalization runs on every exit path (success, fatal stage, gate failure,
SIGINT/SIGTERM, unexpected exception). Its steps are independent and each is
a no-op when its target is already gone, so running it twice is harmless.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from dvr_pipeline.config import PipelineOptions, Settings
from dvr_pipeline.errors import GENERIC_EXIT, FilesystemFailure, InterruptedFailure, PipelineError
from dvr_pipeline.jobs.context import JobContext
from dvr_pipeline.jobs.executor import STAGES, run_stages
from dvr_pipeline.jobs.models import JobState, TerminalOutcome, new_job, output_for
from dvr_pipeline.runtime.gate import lock_for, take_lock, wait_for_admission
from dvr_pipeline.runtime.lockfile import LockFile, LockHandle
from dvr_pipeline.runtime.signals import deferred_interrupts, interruptible, uninterruptible
from dvr_pipeline.stages.base import Stage
from dvr_pipeline.utils.process import ToolRunner, run_tool


def finalize(
    ctx: JobContext,
    outcome: TerminalOutcome | None,
    *,
    lock: LockFile,
    handle: LockHandle | None,
) -> list[str]:
    """
    Release the lock, remove the working directory, remove the original.
    Returns the failures; one failing step never skips the others.
    """
    job = ctx.job
    log = ctx.log
    failures: list[str] = []

    if handle is not None:
        try:
            if lock.release(handle):
                log.info("lock_released", lock=str(lock.path))
            elif lock.exists():
                log.warning("lock_foreign_kept", lock=str(lock.path))
        except OSError as ex:
            failures.append(f"lock: {ex}")
            log.error("lock_release_failed", lock=str(lock.path), error=str(ex))

    if ctx.options.keep_temp:
        log.info("work_dir_kept", work_dir=str(job.work_dir))
    elif job.work_dir.exists():
        log.debug("work_dir_delete", work_dir=str(job.work_dir))
        try:
            shutil.rmtree(job.work_dir)
        except OSError as ex:
            failures.append(f"work_dir: {ex}")
            log.error("work_dir_cleanup_failed", work_dir=str(job.work_dir), error=str(ex))

    if outcome is not None and outcome.ok and not ctx.options.keep_original:
        log.debug("original_delete", source=str(job.source))
        try:
            job.source.unlink()
        except FileNotFoundError:
            pass
        except OSError as ex:
            failures.append(f"original: {ex}")
            log.error("original_cleanup_failed", source=str(job.source), error=str(ex))

    return failures


def _report(ctx: JobContext, outcome: TerminalOutcome) -> None:
    err = outcome.error
    if outcome.ok or err is None:
        return
    fields: dict[str, Any] = {"stage": outcome.stage, "exit_code": outcome.exit_code}
    if err.code is not None:
        fields["code"] = err.code
    if err.suggestions:
        fields["suggestions"] = list(err.suggestions)
    if err.ref:
        fields["ref"] = err.ref
    ctx.log.error("job_failed", error=err.message, **fields)


def run_job(
    ctx: JobContext,
    *,
    stages: Sequence[Stage] = STAGES,
    gate: Callable[[JobContext, LockFile], None] = wait_for_admission,
    acquire: Callable[[JobContext, LockFile], LockHandle] = take_lock,
) -> int:
    """
    Drive one job to a terminal outcome and return the process exit code.

    `gate` blocks until the job may run; `acquire` then takes the lock with
    signals held, so an interrupt never leaves a lock without a handle.
    """
    lock = lock_for(ctx)
    handle: LockHandle | None = None
    outcome: TerminalOutcome | None = None
    state = JobState.WAITING
    ctx.log.info("job_start", file=ctx.job.name)
    try:
        with interruptible():
            try:
                gate(ctx, lock)
                with deferred_interrupts():
                    handle = acquire(ctx, lock)
                state = JobState.RUNNING
                outcome = run_stages(ctx, stages)
            except InterruptedFailure as ex:
                state = JobState.INTERRUPTED
                ctx.log.warning("job_interrupted", signal=ex.signame)
                outcome = TerminalOutcome.failed(None, ex)
            except PipelineError as ex:
                outcome = TerminalOutcome.failed(None, ex)
            except Exception as ex:
                ctx.log.exception("unexpected_failure")
                outcome = TerminalOutcome.failed(None, PipelineError(f"Unexpected failure: {ex}"))
    finally:
        with uninterruptible():
            failures = finalize(ctx, outcome, lock=lock, handle=handle)

    assert outcome is not None
    if state is not JobState.INTERRUPTED:
        state = JobState.DONE if outcome.ok else JobState.FAILED
    _report(ctx, outcome)
    code = outcome.exit_code
    if outcome.ok and failures:
        code = GENERIC_EXIT
        state = JobState.FAILED
    ctx.log.info("job_finished", state=state.value, exit_code=code, completed=list(outcome.completed))
    return code


def process_file(
    source: Path,
    options: PipelineOptions,
    *,
    settings: Settings,
    log: Any,
    verbose: bool = False,
    debug: bool = False,
    runner: ToolRunner = run_tool,
) -> int:
    """
    Create the job for `source` and run it. The source must exist.

    Raises FilesystemFailure, before any lock or working directory exists, when
    the output would replace the source or an existing file.
    """
    source = Path(source).resolve()
    output = output_for(source)
    if output == source:
        raise FilesystemFailure(
            f"Output {output} would replace the source recording",
            suggestions=["Rename the recording; the output is always <name>.mkv next to it."],
        )
    if output.exists():
        raise FilesystemFailure(
            f"Output {output} already exists",
            suggestions=["Move or delete the existing file and run again."],
        )
    job = new_job(source, options, work_root=settings.work_root)
    ctx = JobContext(
        job=job,
        settings=settings,
        log=log.bind(job=job.name),
        runner=runner,
        verbose=verbose or debug,
        stream_tool_output=debug,
    )
    return run_job(ctx)
