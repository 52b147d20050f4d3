from __future__ import annotations

from pathlib import Path

from dvr_pipeline.jobs.context import JobContext
from dvr_pipeline.stages.base import FailurePolicy, Stage
from dvr_pipeline.utils.process import ProcessResult

FFMPEG_OPTS = ("-map_metadata", "1", "-c", "copy")


def _srt_ok(srt: Path) -> Path | None:
    try:
        if not srt.exists() or srt.stat().st_size == 0:
            return None
    except OSError:
        return None
    return srt


def chapters_argv(ctx: JobContext) -> list[str]:
    job = ctx.job
    return [
        ctx.options.ffmpeg_location,
        "-i",
        str(job.ts),
        "-i",
        str(job.ffmeta),
        *FFMPEG_OPTS,
        str(job.mp4),
    ]


def subtitles_argv(ctx: JobContext) -> list[str]:
    """
    Transcoded mkv + extracted srt -> final mkv next to the original recording.
    Metadata from both inputs is kept. Without usable captions only the mkv is copied.
    """
    job = ctx.job
    cmd = [ctx.options.ffmpeg_location, "-i", str(job.mkv)]
    srt = _srt_ok(job.srt)
    if srt is not None:
        cmd += ["-i", str(srt)]
    cmd += ["-c", "copy", "-map_metadata", "0"]
    if srt is not None:
        cmd += ["-map_metadata", "1"]
    cmd.append(str(job.output))
    return cmd


def add_chapters(ctx: JobContext) -> ProcessResult:
    ctx.log.info("chapters_remux_start", file=ctx.job.name)
    return ctx.run_tool("ffmpeg", chapters_argv(ctx))


def add_subtitles(ctx: JobContext) -> ProcessResult:
    job = ctx.job
    if _srt_ok(job.srt) is None:
        ctx.log.info("captions_missing", file=job.name)
    ctx.log.info("subtitles_mux_start", file=job.name, dest=str(job.output.parent))
    return ctx.run_tool("ffmpeg", subtitles_argv(ctx))


CHAPTERS = Stage(name="remux", policy=FailurePolicy.FATAL, run=add_chapters)
SUBTITLES = Stage(name="subtitles", policy=FailurePolicy.FATAL, run=add_subtitles)
