from __future__ import annotations

from dvr_pipeline.errors import PipelineError, ToolExitFailure
from dvr_pipeline.jobs.context import JobContext
from dvr_pipeline.stages.base import FailurePolicy, Stage
from dvr_pipeline.utils.process import ProcessResult

TOOL = "HandBrakeCLI"


def handbrake_argv(ctx: JobContext) -> list[str]:
    """
    Subtitles are left out here; HandBrake would convert them to SSA.
    """
    opts = ctx.options
    job = ctx.job
    cmd = [opts.handbrake_location]
    if opts.handbrake_presets_import:
        cmd += ["--preset-import-file", str(opts.handbrake_presets_import)]
    else:
        cmd.append("--preset-import-gui")
    if opts.handbrake_preset_name:
        cmd += ["--preset", str(opts.handbrake_preset_name)]
    if opts.encoder:
        cmd += ["--encoder", str(opts.encoder)]
    if opts.encoder_preset:
        cmd += ["--encoder-preset", str(opts.encoder_preset)]
    cmd += ["-i", str(job.mp4), "-o", str(job.mkv)]
    return cmd


def classify(result: ProcessResult) -> PipelineError | None:
    if result.ok:
        return None
    return ToolExitFailure(
        TOOL,
        result.code,
        f"HandBrakeCLI failed with code {result.code}",
        suggestions=[
            "Check that the encoder and encoder preset are supported by this HandBrakeCLI build.",
            "HandBrake does not officially support being compiled against a system ffmpeg.",
        ],
    )


def run(ctx: JobContext) -> ProcessResult:
    ctx.log.info("transcode_start", file=ctx.job.name)
    return ctx.run_tool(TOOL, handbrake_argv(ctx))


STAGE = Stage(name="transcode", policy=FailurePolicy.FATAL, run=run, classify=classify)
