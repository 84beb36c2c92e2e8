import os
import logging
import logging.config
from pathlib import Path
from typing import Dict, Any


_configured = False  # idempotency guard

_LIBRARY_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi")


def _build_dict_config(log_file: str | None, level: str) -> Dict[str, Any]:
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "std",
        }
    }

    root_handlers = ["console"]

    if log_file:
        # WatchedFileHandler reopens the file after external rotation
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.WatchedFileHandler",
            "filename": log_file,
            "formatter": "std",
        }
        root_handlers.append("file")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "std": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"}
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": root_handlers},
        # no per-statement SQL in the app log
        "loggers": {"sqlalchemy.engine": {"level": "WARNING"}},
    }


def configure_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Configure stdout logging plus an optional log file.

    Explicit arguments win; otherwise ``LOG_LEVEL`` / ``LOG_FILE_PATH`` from the
    environment are used. Safe to call more than once.
    """
    global _configured
    if _configured:
        return

    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("LOG_FILE_PATH") or None

    logging.config.dictConfig(_build_dict_config(log_file, level))

    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(level)

    _configured = True
