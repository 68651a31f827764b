# credbundle/utils/logging_cfg.py
from __future__ import annotations

import logging
import logging.config
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import LoggingSettings

SHORT_FORMAT = "%(asctime)s  %(levelname)-7s  %(message)s"
DETAILED_FORMAT = "%(asctime)s  %(levelname)-7s  [%(name)s:%(lineno)d]  %(message)s"


def _file_handler(path: Path, level: str, formatter: str) -> Dict[str, Any]:
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "encoding": "utf-8",
        "formatter": formatter,
    }


def build_logging_config(settings: LoggingSettings, log_dir: Optional[Path]) -> Dict[str, Any]:
    """dictConfig schema: the ``summary`` logger talks to the user, the
    ``credbundle`` package logger feeds the files.

    Without *log_dir* package records go to the console instead, filtered by
    ``console_level``.
    """
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.console_level.upper(),
            "formatter": "short",
        },
    }
    summary_handlers = ["console"]
    package_handlers = ["console"]

    if log_dir is not None:
        stamp = datetime.now().strftime("%Y%m%d")
        handlers["summary_file"] = _file_handler(log_dir / f"credbundle-{stamp}.log", "INFO", "short")
        handlers["debug_file"] = _file_handler(log_dir / f"credbundle-{stamp}-debug.log", "DEBUG", "detailed")
        summary_handlers = ["console", "summary_file"]
        package_handlers = ["summary_file", "debug_file"]

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "short": {"format": SHORT_FORMAT, "datefmt": "%H:%M:%S"},
            "detailed": {"format": DETAILED_FORMAT},
        },
        "handlers": handlers,
        "loggers": {
            "summary": {"level": "INFO", "handlers": summary_handlers, "propagate": False},
            "credbundle": {
                "level": settings.level.upper(),
                "handlers": package_handlers,
                "propagate": False,
            },
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
    }


def configure_logging(settings: Optional[LoggingSettings] = None) -> Optional[Path]:
    """Initialise console output and, when a log directory is configured, a
    summary file plus a debug file.

    Returns the log directory, or None for console-only logging.
    """
    settings = settings or LoggingSettings()
    log_dir = Path(settings.log_dir) if settings.log_dir else None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(settings, log_dir))
    logging.getLogger("summary").info("🟢 Logging initialised → %s", log_dir or "console")
    return log_dir
