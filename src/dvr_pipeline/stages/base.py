from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from dvr_pipeline.errors import PipelineError, ToolExitFailure
from dvr_pipeline.jobs.context import JobContext
from dvr_pipeline.utils.process import ProcessResult


class FailurePolicy(str, Enum):
    FATAL = "fatal"
    BENIGN_ON_CODES = "benign-on-specific-codes"
    FALLBACK = "fallback-on-missing-precondition"


def fatal_unless_ok(result: ProcessResult) -> PipelineError | None:
    if result.ok:
        return None
    return ToolExitFailure(result.tool, result.code)


@dataclass(frozen=True, slots=True)
class Stage:
    """
    One pipeline step.

    `run` performs the step and returns the tool's ProcessResult, or None when
    the step was a local action (or was skipped). Local actions signal failure
    by raising PipelineError. `classify` turns a ProcessResult into the fatal
    error it represents, or None to continue.

    `policy` is descriptive only: it labels the stage in logs and listings.
    Every continue/stop decision comes from `run` and `classify`.
    """

    name: str
    policy: FailurePolicy
    run: Callable[[JobContext], ProcessResult | None]
    classify: Callable[[ProcessResult], PipelineError | None] = fatal_unless_ok
