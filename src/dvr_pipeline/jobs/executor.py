"""
Stage executor.

INVARIANTS:
    - Stages execute strictly in order; a stage starts only after the previous
      one's result is known
    - The first fatal outcome stops the run; earlier side effects stay in place
    - Benign tool exits are absorbed here and never surface as errors
"""

from __future__ import annotations

from collections.abc import Sequence

from dvr_pipeline.errors import InterruptedFailure, PipelineError, SpawnFailure
from dvr_pipeline.jobs.context import JobContext
from dvr_pipeline.jobs.models import TerminalOutcome
from dvr_pipeline.stages import acquire, captions, commercials, remux, transcode
from dvr_pipeline.stages.base import Stage

STAGES: tuple[Stage, ...] = (
    acquire.STAGE,
    commercials.SCAN,
    commercials.CUT,
    captions.STAGE,
    remux.CHAPTERS,
    transcode.STAGE,
    remux.SUBTITLES,
)


def run_stages(ctx: JobContext, stages: Sequence[Stage] = STAGES) -> TerminalOutcome:
    completed: list[str] = []
    for stage in stages:
        log = ctx.log.bind(stage=stage.name)
        log.debug("stage_start", policy=stage.policy.value)
        try:
            result = stage.run(ctx)
        except InterruptedFailure:
            raise
        except PipelineError as ex:
            log.error("stage_failed", error=ex.message)
            return TerminalOutcome.failed(stage.name, ex, tuple(completed))

        if result is not None:
            if not result.spawned:
                err: PipelineError | None = SpawnFailure(result.tool, str(result.spawn_error))
            else:
                err = stage.classify(result)
            if err is not None:
                log.error(
                    "stage_failed",
                    error=err.message,
                    code=result.code,
                    output_tail=result.output_tail[-2000:],
                )
                return TerminalOutcome.failed(stage.name, err, tuple(completed))
            if result.benign:
                log.info("stage_benign_exit", tool=result.tool, code=result.code)

        completed.append(stage.name)
        log.debug("stage_done")
    return TerminalOutcome.succeeded(tuple(completed))
