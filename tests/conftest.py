from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog

from dvr_pipeline.config import PipelineOptions, Settings, get_settings
from dvr_pipeline.jobs.context import JobContext
from dvr_pipeline.jobs.models import new_job


def _reset_logging() -> None:
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    if hasattr(root, "_dvr_pipeline_structlog_configured"):
        delattr(root, "_dvr_pipeline_structlog_configured")
    root.setLevel(logging.WARNING)
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def _test_env(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    root = tmp_path_factory.mktemp("dvr_test")
    for d in ("config", "cache", "work"):
        (root / d).mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("PLEX_DVR_CONFIG_DIR", str(root / "config"))
    monkeypatch.setenv("PLEX_DVR_CACHE_DIR", str(root / "cache"))
    monkeypatch.setenv("PLEX_DVR_WORK_ROOT", str(root / "work"))
    monkeypatch.setenv("PLEX_DVR_LOCK_FILE", str(root / "dvrProcessing.lock"))
    monkeypatch.setenv("PLEX_DVR_QUIET_POLL_SEC", "0.01")
    monkeypatch.setenv("PLEX_DVR_LOCK_POLL_SEC", "0.01")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    get_settings.cache_clear()
    yield
    _reset_logging()
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def source(tmp_path: Path) -> Path:
    p = tmp_path / "recordings" / "Show (2020) - S01E02.ts"
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(b"\x47" * 188 * 4)
    return p


@pytest.fixture
def make_ctx(settings: Settings, source: Path) -> Callable[..., JobContext]:
    def _make(*, runner: Any = None, verbose: bool = False, **opts: Any) -> JobContext:
        current = get_settings()
        options = PipelineOptions.model_validate(opts)
        job = new_job(source, options, work_root=current.work_root)
        kwargs: dict[str, Any] = {}
        if runner is not None:
            kwargs["runner"] = runner
        return JobContext(
            job=job,
            settings=current,
            log=structlog.get_logger("test"),
            verbose=verbose,
            **kwargs,
        )

    return _make
