from __future__ import annotations

from dvr_pipeline.errors import PipelineError, ToolExitFailure
from dvr_pipeline.jobs.context import JobContext
from dvr_pipeline.stages.base import FailurePolicy, Stage
from dvr_pipeline.utils.process import BenignExit, ProcessResult

TOOL = "ccextractor"
CCEXTRACTOR_ARGS = (
    "-in=ts",
    "-out=srt",
    "--nofontcolor",
    "--notypesetting",
    "-noru",
    "--splitbysentence",
)
CCEXTRACTOR_REF = (
    "https://github.com/CCExtractor/ccextractor/blob/v0.88/src/lib_ccx/ccx_common_common.h"
)
NO_CAPTIONS_EXIT = 10

# exit code -> cause, from ccextractor's exit code catalogue
EXIT_CAUSES: dict[int, str] = {
    2: "no input files",
    3: "too many input files",
    4: "bad parameters",
    7: "bad parameters",
    9: "help text shown",
}


def ccextractor_argv(ctx: JobContext) -> list[str]:
    job = ctx.job
    return [ctx.options.ccextractor_location, *CCEXTRACTOR_ARGS, str(job.ts), "-o", str(job.srt)]


def classify(result: ProcessResult) -> PipelineError | None:
    if result.ok:
        return None
    cause = EXIT_CAUSES.get(result.code) if result.code is not None else None
    message = (
        f"CCExtractor exited with {cause}" if cause else f"CCExtractor exited with code {result.code}"
    )
    return ToolExitFailure(
        TOOL,
        result.code,
        message,
        suggestions=["CCExtractor exit codes are documented in its source on GitHub."],
        ref=CCEXTRACTOR_REF,
    )


def run(ctx: JobContext) -> ProcessResult:
    ctx.log.info("captions_start", file=ctx.job.name)
    return ctx.run_tool(TOOL, ccextractor_argv(ctx), benign=[BenignExit(code=NO_CAPTIONS_EXIT)])


STAGE = Stage(name="captions", policy=FailurePolicy.BENIGN_ON_CODES, run=run, classify=classify)
