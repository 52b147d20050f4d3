from __future__ import annotations

import shutil

from dvr_pipeline.errors import FilesystemFailure
from dvr_pipeline.jobs.context import JobContext
from dvr_pipeline.stages.base import FailurePolicy, Stage


def run(ctx: JobContext) -> None:
    job = ctx.job
    ctx.log.debug("acquire_copy", src=str(job.source), work_dir=str(job.work_dir))
    try:
        shutil.copy2(job.source, job.ts)
    except OSError as ex:
        raise FilesystemFailure(f"Unable to copy {job.source} into {job.work_dir}: {ex}") from ex
    return None


STAGE = Stage(name="acquire", policy=FailurePolicy.FATAL, run=run)
