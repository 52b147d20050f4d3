from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from dvr_pipeline.config import PipelineOptions, Settings
from dvr_pipeline.jobs.models import Job
from dvr_pipeline.utils.process import BenignExit, ProcessResult, ToolRunner, run_tool


@dataclass(frozen=True, slots=True)
class JobContext:
    """
    Everything a component needs for one job, passed explicitly.

    `runner` is the process runner; tests swap in a fake.
    """

    job: Job
    settings: Settings
    log: Any
    runner: ToolRunner = run_tool
    verbose: bool = False
    stream_tool_output: bool = False

    @property
    def options(self) -> PipelineOptions:
        return self.job.options

    def child_env_overrides(self) -> dict[str, str | None]:
        if self.settings.clear_ld_library_path:
            return {"LD_LIBRARY_PATH": None}
        return {}

    def run_tool(
        self, tool: str, argv: Sequence[str], *, benign: Sequence[BenignExit] = ()
    ) -> ProcessResult:
        return self.runner(
            tool,
            list(argv),
            log=self.log,
            benign=tuple(benign),
            env_overrides=self.child_env_overrides(),
            checkin_s=self.settings.checkin_interval_sec if self.verbose else None,
            stream_output=self.stream_tool_output,
            tail_lines=self.settings.output_tail_lines,
        )
