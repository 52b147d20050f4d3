from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

from dvr_pipeline.config import Settings

LOGGER_NAME = "dvr_pipeline"
LOG_FILE_NAME = "PlexDvrProcessing.log"
ERROR_LOG_NAME = "error.log"

logger = structlog.get_logger(LOGGER_NAME)


def rename_event_to_msg(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    if "msg" not in event_dict and "event" in event_dict:
        event_dict["msg"] = event_dict.pop("event")
    return event_dict


def level_for(*, verbose: bool = False, debug: bool = False, default: str = "INFO") -> str:
    if debug or verbose:
        return "DEBUG"
    return str(default).upper()


def _file_handler(path: Path, settings: Settings, formatter: logging.Formatter) -> RotatingFileHandler:
    h = RotatingFileHandler(
        filename=str(path),
        maxBytes=int(settings.log_max_bytes),
        backupCount=int(settings.log_backup_count),
        encoding="utf-8",
    )
    h.setFormatter(formatter)
    return h


def configure_logging(settings: Settings, level: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Console (human readable) + rotating JSON log + rotating error-only log.
    Log files live in the cache dir; safe to call more than once.
    """
    lvl = str(level or settings.log_level).upper()
    root = logging.getLogger()
    root.setLevel(lvl)

    if getattr(root, "_dvr_pipeline_structlog_configured", False):
        for h in root.handlers:
            if not getattr(h, "_dvr_error_only", False):
                h.setLevel(lvl)
        return structlog.get_logger(LOGGER_NAME)

    pre_chain = [
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
        structlog.stdlib.add_log_level,
        structlog.processors.format_exc_info,
    ]
    json_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            rename_event_to_msg,
            structlog.processors.JSONRenderer(),
        ],
        foreign_pre_chain=pre_chain,
    )
    console_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        foreign_pre_chain=[
            structlog.processors.TimeStamper(fmt="%m/%d %H:%M:%S", key="timestamp"),
            structlog.stdlib.add_log_level,
        ],
    )

    root.handlers.clear()
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(console_formatter)
    stream_handler.setLevel(lvl)
    root.addHandler(stream_handler)

    log_dir = Path(settings.cache_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        main_handler = _file_handler(log_dir / LOG_FILE_NAME, settings, json_formatter)
        main_handler.setLevel(lvl)
        error_handler = _file_handler(log_dir / ERROR_LOG_NAME, settings, json_formatter)
        error_handler.setLevel(logging.ERROR)
        error_handler._dvr_error_only = True  # type: ignore[attr-defined]
        root.addHandler(main_handler)
        root.addHandler(error_handler)
    except OSError as ex:
        # File logs are optional; the console handler keeps working.
        root.warning("file logging disabled: %s", ex)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="%m/%d %H:%M:%S", key="timestamp"),
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root._dvr_pipeline_structlog_configured = True  # type: ignore[attr-defined]
    return structlog.get_logger(LOGGER_NAME)

