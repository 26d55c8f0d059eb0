"""
Logging for the CI-Image-Auditor.

Everything the auditor logs can carry hostile or sensitive text: scraped
pipeline files, scanner stderr, URLs and the access token itself. Records
therefore pass through:
- SecretFilter: GitLab tokens and key=value secrets are redacted
- RunFilter: each record is stamped with the run id
- SanitizingFormatter / JsonFormatter: one physical line per record

Worker threads are named after their stage (probe_0, scrape_1, scan_0),
so the thread name in a record says which stage emitted it.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from image_auditor.utils.sanitizer import redact_secrets, strip_control_chars

PACKAGE_LOGGER = "image_auditor"

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
COLOR_FORMAT = (
    "\033[90m%(asctime)s\033[0m "
    "[\033[1m%(levelname)s\033[0m] "
    "\033[36m%(name)s\033[0m: %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class SecretFilter(logging.Filter):
    """Redact tokens from the message and its arguments before formatting."""
    
    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = redact_secrets(str(record.msg))
        
        # %-style arguments are formatted later, so they are redacted too
        if isinstance(record.args, dict):
            record.args = {
                k: redact_secrets(v) if isinstance(v, str) else v
                for k, v in record.args.items()
            }
        elif isinstance(record.args, tuple):
            record.args = tuple(
                redact_secrets(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        
        return True  # never drops a record, only rewrites it


class RunFilter(logging.Filter):
    """Stamp records with the run id (the run's compact timestamp)."""
    
    def __init__(self, run_id: str | None = None) -> None:
        super().__init__()
        self.run_id = run_id
    
    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = self.run_id
        return True


class SanitizingFormatter(logging.Formatter):
    """
    Formatter that keeps every record on one line.
    
    A crafted pipeline file or scanner output with embedded newlines or
    terminal escapes must not be able to forge log lines.
    """
    
    def format(self, record: logging.LogRecord) -> str:
        message = strip_control_chars(super().format(record))
        return message.replace("\n", "\\n").replace("\r", "\\r")


class JsonFormatter(logging.Formatter):
    """
    Single-line JSON records for CI log collectors.
    
    Each record carries the run id and the worker thread so parallel
    probe, scrape and scan output can be told apart after the fact.
    """
    
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        
        run_id = getattr(record, "run_id", None)
        if run_id:
            log_data["run_id"] = run_id
        
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        
        # json.dumps escapes newlines, so no further sanitizing is needed
        return json.dumps(log_data, default=str, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    no_color: bool = False,
) -> logging.Logger:
    """
    Set up logging for the auditor package.
    
    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, output structured JSON logs
        no_color: If True, disable colored output
    
    Returns:
        Configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    
    # Re-running setup (tests, repeated CLI invocations) must not stack handlers
    logger.handlers.clear()
    
    # stderr keeps stdout free for the rich summary
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.addFilter(SecretFilter())
    handler.addFilter(RunFilter())
    
    if json_output:
        formatter: logging.Formatter = JsonFormatter()
    else:
        format_str = TEXT_FORMAT if no_color else COLOR_FORMAT
        formatter = SanitizingFormatter(format_str, datefmt=DATE_FORMAT)
    
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    
    logger.propagate = False
    
    return logger


def bind_run(run_id: str) -> None:
    """Tag every record from now on with `run_id`."""
    for handler in logging.getLogger(PACKAGE_LOGGER).handlers:
        for log_filter in handler.filters:
            if isinstance(log_filter, RunFilter):
                log_filter.run_id = run_id


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger within the package namespace.
    
    Args:
        name: Logger name (will be prefixed with 'image_auditor.')
    
    Returns:
        Logger instance
    """
    if not name.startswith(PACKAGE_LOGGER):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
