from __future__ import annotations

import tempfile
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from dvr_pipeline.config import PipelineOptions
from dvr_pipeline.errors import PipelineError

WORK_DIR_PREFIX = "plex-"
OUTPUT_SUFFIX = ".mkv"


def output_for(source: Path) -> Path:
    """Final artifact path: `<name>.mkv` next to the recording."""
    return source.parent / f"{source.stem}{OUTPUT_SUFFIX}"


class JobState(str, Enum):
    WAITING = "WAITING"
    RUNNING = "RUNNING"
    DONE = "DONE"
    FAILED = "FAILED"
    INTERRUPTED = "INTERRUPTED"


def now_utc() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True, slots=True)
class Job:
    """
    One processing run of one recording.

    The working directory belongs to this job alone until finalization; all
    intermediate artifacts are `<name><suffix>` inside it.
    """

    id: str
    source: Path
    work_dir: Path
    options: PipelineOptions
    created_at: str = field(default_factory=now_utc)

    @property
    def name(self) -> str:
        return self.source.stem

    def artifact(self, suffix: str) -> Path:
        return self.work_dir / f"{self.name}{suffix}"

    @property
    def ts(self) -> Path:
        return self.artifact(".ts")

    @property
    def edl(self) -> Path:
        return self.artifact(".edl")

    @property
    def ffmeta(self) -> Path:
        return self.artifact(".ffmeta")

    @property
    def srt(self) -> Path:
        return self.artifact(".srt")

    @property
    def mp4(self) -> Path:
        return self.artifact(".mp4")

    @property
    def mkv(self) -> Path:
        return self.artifact(".mkv")

    @property
    def output(self) -> Path:
        return output_for(self.source)


def new_job(source: Path, options: PipelineOptions, *, work_root: Path) -> Job:
    source = Path(source).resolve()
    work_root = Path(work_root)
    work_root.mkdir(parents=True, exist_ok=True)
    work_dir = Path(tempfile.mkdtemp(prefix=WORK_DIR_PREFIX, dir=str(work_root)))
    return Job(id=new_id(), source=source, work_dir=work_dir, options=options)


@dataclass(frozen=True, slots=True)
class TerminalOutcome:
    """How the stage run ended: success, or the first fatal error and its stage."""

    ok: bool
    completed: tuple[str, ...] = ()
    stage: str | None = None
    error: PipelineError | None = None

    @classmethod
    def succeeded(cls, completed: tuple[str, ...]) -> TerminalOutcome:
        return cls(ok=True, completed=completed)

    @classmethod
    def failed(
        cls, stage: str | None, error: PipelineError, completed: tuple[str, ...] = ()
    ) -> TerminalOutcome:
        return cls(ok=False, completed=completed, stage=stage, error=error)

    @property
    def exit_code(self) -> int:
        if self.ok:
            return 0
        return self.error.exit_code if self.error is not None else 1
