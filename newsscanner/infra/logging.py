"""Logging setup for the scanner.

Loggers are named ``newsscanner.<area>.<task>`` and share one stderr console
handler configured with ``dictConfig``. Records carry a diagnostic context
(``source``, ``url``) set by :func:`mdc_scope`, shown after the message in the
pattern layout or as an ``mdc`` object in the JSON layout.

Environment:
- ``NSC_LOG_LEVEL``: DEBUG, INFO, WARN, ERROR, FATAL (default: INFO)
- ``NSC_LOG_JSON``: 1 to switch the console to JSON lines
"""

from __future__ import annotations

import contextvars
import json
import logging
import logging.config
import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

PATTERN = "[%(asctime)s][%(levelname)s][%(name)s] %(message)s%(mdc_suffix)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"

_MDC: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar("nsc_mdc", default={})
_configured = False


@contextmanager
def mdc_scope(**values: Any) -> Iterator[None]:
    """Add ``values`` to the diagnostic context of the current thread for the block."""
    token = _MDC.set({**_MDC.get(), **values})
    try:
        yield
    finally:
        _MDC.reset(token)


class MDCFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        ctx = _MDC.get()
        record.mdc = dict(ctx)
        pairs = " ".join(f"{k}={v}" for k, v in ctx.items())
        record.mdc_suffix = f" | {pairs}" if pairs else ""
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        out: Dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if getattr(record, "mdc", None):
            out["mdc"] = record.mdc
        if record.exc_info:
            out["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(out, ensure_ascii=False)


def _level() -> int:
    name = os.getenv("NSC_LOG_LEVEL", "INFO").strip().upper()
    name = {"WARN": "WARNING", "FATAL": "CRITICAL"}.get(name, name)
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def build_logging_config() -> Dict[str, Any]:
    as_json = os.getenv("NSC_LOG_JSON", "0").strip().lower() in {"1", "true", "yes", "on"}
    level = _level()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"mdc": {"()": MDCFilter}},
        "formatters": {
            "pattern": {"format": PATTERN, "datefmt": DATEFMT},
            "json": {"()": JSONFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "level": level,
                "filters": ["mdc"],
                "formatter": "json" if as_json else "pattern",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {"urllib3": {"level": "WARNING"}},
    }


def init_logging(force: bool = False) -> None:
    """Apply :func:`build_logging_config`; later calls are no-ops unless ``force``."""
    global _configured
    if _configured and not force:
        return
    logging.config.dictConfig(build_logging_config())
    _configured = True


def add_file_handler(log_file: str) -> None:
    init_logging()
    root = logging.getLogger()
    if any(isinstance(h, logging.FileHandler) for h in root.handlers):
        return
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(root.level)
    handler.addFilter(MDCFilter())
    handler.setFormatter(logging.Formatter(PATTERN, DATEFMT))
    root.addHandler(handler)


def get_unified_logger(program: str, task_type: str) -> logging.Logger:
    """Logger named ``newsscanner.<program>.<task_type>``."""
    if not _configured and not logging.getLogger().handlers:
        init_logging()
    return logging.getLogger(f"newsscanner.{program}.{task_type}")


def _dump(data: Dict[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=False, default=str)


def log_task_start(program: str, task_type: str, details: Optional[Dict[str, Any]] = None) -> None:
    get_unified_logger(program, task_type).info("[TASK START] %s", _dump(details or {}))


def log_task_end(
    program: str, task_type: str, success: bool, details: Optional[Dict[str, Any]] = None
) -> None:
    get_unified_logger(program, task_type).info(
        "[TASK END] %s", _dump({"success": success, **(details or {})})
    )


def log_processing_step(
    program: str, task_type: str, message: str, details: Optional[Dict[str, Any]] = None
) -> None:
    logger = get_unified_logger(program, task_type)
    if details:
        logger.info("%s | %s", message, _dump(details))
    else:
        logger.info("%s", message)


def log_batch_processing(
    program: str,
    task_type: str,
    operation: str,
    total_items: int,
    success_count: int,
    failure_count: int,
    duration: float,
    status: str,
) -> None:
    get_unified_logger(program, task_type).info(
        "[BATCH] %s",
        _dump(
            {
                "operation": operation,
                "total": total_items,
                "success": success_count,
                "failed": failure_count,
                "duration": round(duration, 3),
                "status": status,
            }
        ),
    )


__all__ = [
    "init_logging",
    "add_file_handler",
    "build_logging_config",
    "mdc_scope",
    "MDCFilter",
    "JSONFormatter",
    "get_unified_logger",
    "log_task_start",
    "log_task_end",
    "log_processing_step",
    "log_batch_processing",
]
