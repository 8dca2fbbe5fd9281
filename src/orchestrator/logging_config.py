"""
Analysis Logging
================

Logging setup for the CLI, the API and the indexing script.

Every record about an analysis run can carry context fields (run, product,
analysis type, competitor, duration). They are emitted as top-level keys in
JSON output and as a trailing [key=value ...] block in text output.

Context is attached through RunContextAdapter:

    log = run_logger(logger, run_id=run_id, product_id=product_id)
    log.info("Starting run")
    log.bind(analysis_type="swot").warning("swot failed")

Usage:
    from src.data.config import LoggingConfig
    from src.orchestrator.logging_config import setup_logging

    setup_logging(LoggingConfig())                 # LOG_LEVEL / LOG_JSON / LOG_FILE
    setup_logging(LoggingConfig(), level="DEBUG")  # --verbose
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional, Tuple

from src.data.config import LoggingConfig

CONTEXT_FIELDS = ("run_id", "product_id", "analysis_type", "competitor_id", "duration")

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Client libraries that log every HTTP request at INFO
QUIET_LOGGERS = ("httpx", "openai", "anthropic")


def _context_of(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

        {"ts": "...", "level": "INFO", "logger": "...", "msg": "...", "run_id": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(_context_of(record))

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ContextTextFormatter(logging.Formatter):
    """Human-readable lines with the run context appended."""

    def __init__(self):
        super().__init__(
            "%(asctime)s [%(levelname)-8s] %(name)-40s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context_of(record)
        if not context:
            return line

        first, sep, rest = line.partition("\n")
        tags = " ".join(f"{k}={_short(k, v)}" for k, v in context.items())
        return f"{first} [{tags}]{sep}{rest}"


def _short(key: str, value: Any) -> str:
    # Run ids are uuid4; the first block is enough to follow a run by eye
    if key == "run_id":
        return str(value)[:8]
    return str(value)


class RunContextAdapter(logging.LoggerAdapter):
    """
    LoggerAdapter whose context is merged with (not replaced by) the
    `extra=` of each call.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def bind(self, **context: Any) -> "RunContextAdapter":
        return RunContextAdapter(self.logger, {**self.extra, **context})


def run_logger(logger: logging.Logger, **context: Any) -> RunContextAdapter:
    """Adapter over logger carrying the given context fields."""
    unknown = set(context) - set(CONTEXT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown log context fields: {sorted(unknown)}")
    return RunContextAdapter(logger, context)


def setup_logging(config: Optional[LoggingConfig] = None, level: Optional[str] = None):
    """
    Configure the root logger.

    Args:
        config: Logging settings; LoggingConfig() (environment) when omitted
        level: Overrides config.level (the CLI's --verbose)
    """
    config = config or LoggingConfig()
    level = level or config.level

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    formatter = JSONFormatter() if config.json_logs else ContextTextFormatter()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    if config.log_file:
        os.makedirs(os.path.dirname(config.log_file) or ".", exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info(
        "Logging configured: level=%s json=%s file=%s",
        level, config.json_logs, config.log_file or "none",
    )
