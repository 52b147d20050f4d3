"""
Configuration for plex-dvr.

Two layers:
  - `Settings`: process-level knobs (paths, poll intervals, logging) loaded from
    the environment / optional `.env` via pydantic-settings.
  - `PipelineOptions`: the resolved per-job option bundle handed to the pipeline.
    Built by `load_options()` from defaults < `config.json` < invocation overrides.
"""

from __future__ import annotations

import json
import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "plex-dvr"
CONFIG_FILE_NAME = "config.json"
COMSKIP_INI_NAME = "comskip.ini"


class ConfigError(RuntimeError):
    pass


def _xdg_dir(env_name: str, fallback: str) -> Path:
    base = os.environ.get(env_name)
    root = Path(base) if base else Path.home() / fallback
    return (root / APP_NAME).resolve()


class Settings(BaseSettings):
    """
    Process-level settings with safe defaults.

    Loaded from (in order):
      - process env
      - optional `.env` file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # --- locations ---
    config_dir: Path = Field(
        default_factory=lambda: _xdg_dir("XDG_CONFIG_HOME", ".config"), alias="PLEX_DVR_CONFIG_DIR"
    )
    cache_dir: Path = Field(
        default_factory=lambda: _xdg_dir("XDG_CACHE_HOME", ".cache"), alias="PLEX_DVR_CACHE_DIR"
    )
    lock_path: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "dvrProcessing.lock",
        alias="PLEX_DVR_LOCK_FILE",
    )
    work_root: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()), alias="PLEX_DVR_WORK_ROOT"
    )

    # --- admission gate ---
    stale_lock_hours: float = Field(default=24.0, alias="PLEX_DVR_STALE_LOCK_HOURS")
    quiet_poll_sec: float = Field(default=900.0, alias="PLEX_DVR_QUIET_POLL_SEC")
    lock_poll_sec: float = Field(default=300.0, alias="PLEX_DVR_LOCK_POLL_SEC")

    # --- tool execution ---
    checkin_interval_sec: float = Field(default=60.0, alias="PLEX_DVR_CHECKIN_SEC")
    output_tail_lines: int = Field(default=50, alias="PLEX_DVR_OUTPUT_TAIL_LINES")
    # comskip exits 1 when nothing was found; also require its "not found" message
    scanner_marker_required: bool = Field(default=True, alias="PLEX_DVR_SCANNER_MARKER_REQUIRED")
    # Plex sets this var, which breaks ffmpeg builds compiled with qsv
    clear_ld_library_path: bool = Field(default=True, alias="PLEX_DVR_CLEAR_LD_LIBRARY_PATH")

    # --- logging ---
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_max_bytes: int = Field(default=1_000_000, alias="LOG_MAX_BYTES")
    log_backup_count: int = Field(default=10, alias="LOG_BACKUP_COUNT")

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    @property
    def comskip_ini(self) -> Path:
        return self.config_dir / COMSKIP_INI_NAME

    @property
    def stale_lock_seconds(self) -> float:
        return float(self.stale_lock_hours) * 3600.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def _hyphenate(name: str) -> str:
    return name.replace("_", "-")


class PipelineOptions(BaseModel):
    """
    Resolved per-job options. Keys use the hyphenated names of `config.json`.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=_hyphenate,
    )

    encoder: str | None = None
    encoder_preset: str | None = None
    ignore_quiet_time: bool = False
    keep_original: bool = False
    keep_temp: bool = False
    quiet_time: str | None = None
    handbrake_presets_import: str | None = None
    handbrake_preset_name: str | None = None
    bypass_comskip: bool = False

    comskip_location: str = "comskip"
    comcut_location: str = "comcut"
    ccextractor_location: str = "ccextractor"
    ffmpeg_location: str = "ffmpeg"
    handbrake_location: str = "HandBrakeCLI"


def _normalized(values: Mapping[str, Any]) -> dict[str, Any]:
    # Blank values mean "not set" and must not mask lower-precedence layers.
    out: dict[str, Any] = {}
    for key, value in values.items():
        if value is None or value == "":
            continue
        out[_hyphenate(str(key))] = value
    return out


def read_user_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as ex:
        raise ConfigError(f"Unable to read config file {path}: {ex}") from ex
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def load_options(
    overrides: Mapping[str, Any] | None = None,
    *,
    settings: Settings | None = None,
) -> PipelineOptions:
    """
    Merge defaults < user `config.json` < invocation overrides.
    """
    s = settings or get_settings()
    merged = _normalized(read_user_config(s.config_file))
    merged.update(_normalized(overrides or {}))
    try:
        return PipelineOptions.model_validate(merged)
    except ValidationError as ex:
        raise ConfigError(f"Invalid configuration: {ex}") from ex


def sample_config(options: PipelineOptions) -> str:
    data = options.model_dump(by_alias=True)
    return json.dumps({k: ("" if v is None else v) for k, v in data.items()}, indent=2)
