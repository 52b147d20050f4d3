"""
Commercial detection (comskip) and removal (comcut).

comskip writes `<name>.edl` into the working directory when it finds breaks.
No boundary list means no commercials: comcut is skipped and an empty chapter
metadata file stands in for the one comcut would have left behind.
"""

from __future__ import annotations

import re

from dvr_pipeline.errors import FilesystemFailure
from dvr_pipeline.jobs.context import JobContext
from dvr_pipeline.stages.base import FailurePolicy, Stage
from dvr_pipeline.utils.process import BenignExit, ProcessResult

COMSKIP_OPTS = ("--pid=0100", "--ts", "--hwassist")
COMCUT_OPTS = ("--keep-meta",)
COMSKIP_NO_COMMERCIALS_EXIT = 1
NO_COMMERCIALS_RE = re.compile(r"(?i)commercials\s+(were\s+)?not\s+found|no\s+commercials\s+(were\s+)?found")
FFMETA_HEADER = ";FFMETADATA1\n"


def comskip_argv(ctx: JobContext) -> list[str]:
    job = ctx.job
    return [
        ctx.options.comskip_location,
        *COMSKIP_OPTS,
        f"--ini={ctx.settings.comskip_ini}",
        f"--output={job.work_dir}",
        f"--output-filename={job.name}",
        str(job.ts),
    ]


def comcut_argv(ctx: JobContext) -> list[str]:
    job = ctx.job
    return [
        ctx.options.comcut_location,
        *COMCUT_OPTS,
        f"--comskip-ini={ctx.settings.comskip_ini}",
        f"--work-dir={job.work_dir}",
        str(job.ts),
    ]


def no_commercials_exit(*, marker_required: bool) -> BenignExit:
    return BenignExit(
        code=COMSKIP_NO_COMMERCIALS_EXIT,
        marker=NO_COMMERCIALS_RE if marker_required else None,
    )


def scan(ctx: JobContext) -> ProcessResult | None:
    if ctx.options.bypass_comskip:
        ctx.log.info("comskip_bypassed")
        return None
    ctx.log.info("comskip_start", file=ctx.job.name)
    benign = no_commercials_exit(marker_required=ctx.settings.scanner_marker_required)
    return ctx.run_tool("comskip", comskip_argv(ctx), benign=[benign])


def cut(ctx: JobContext) -> ProcessResult | None:
    job = ctx.job
    if job.edl.exists():
        ctx.log.info("comcut_start", file=job.name)
        return ctx.run_tool("comcut", comcut_argv(ctx))

    if not ctx.options.bypass_comskip:
        ctx.log.info("no_commercials", file=job.name)
    ctx.log.debug("ffmeta_placeholder", path=str(job.ffmeta))
    try:
        job.ffmeta.write_text(FFMETA_HEADER, encoding="utf-8")
    except OSError as ex:
        raise FilesystemFailure(f"Unable to write {job.ffmeta}: {ex}") from ex
    return None


SCAN = Stage(name="scan", policy=FailurePolicy.BENIGN_ON_CODES, run=scan)
CUT = Stage(name="cut", policy=FailurePolicy.FALLBACK, run=cut)
