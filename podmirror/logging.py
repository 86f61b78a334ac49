# Copyright 2025 podmirror
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Structured logging configuration for podmirror.

Log output goes to stderr so stdout stays free for the user-facing console
messages and the progress bar.

Environment Variables:
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Default: INFO
    LOG_FORMAT: Output format (console, json, auto). Default: auto
    LOG_FILE: Optional file path for log output. Default: None (stderr only)

Example:
    from podmirror.logging import configure_structlog, get_logger

    configure_structlog()
    logger = get_logger(__name__)
    logger.warning("Download failed", episode_id="12-some-title", status_code=404)

The download scheduler binds ``job`` and ``url`` with structlog.contextvars
for the lifetime of each transfer, so worker-thread log lines carry them
without passing them explicitly.
"""

import logging
import os
import sys
from typing import Any, List, Optional

import structlog
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer


def get_log_level() -> int:
    """Get log level from the LOG_LEVEL environment variable."""
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def get_log_format() -> str:
    """Get log format from environment variable.

    Formats:
        - console: Colored output for development (default for TTY)
        - json: JSON output for log collectors
        - auto: console if TTY, json otherwise (default)

    Returns:
        Format string: 'console' or 'json'
    """
    format_str = os.getenv("LOG_FORMAT", "auto").lower()
    if format_str == "auto":
        return "console" if sys.stderr.isatty() else "json"
    return format_str


def _get_renderer(log_format: str) -> Any:
    if log_format == "console":
        return ConsoleRenderer(colors=True)
    return JSONRenderer()


def configure_structlog(log_level: Optional[int] = None) -> None:
    """Configure structlog based on environment variables.

    Call once at application startup, before any loggers are used.

    Args:
        log_level: Optional explicit level overriding LOG_LEVEL
    """
    if log_level is None:
        log_level = get_log_level()
    log_format = get_log_format()
    log_file = os.getenv("LOG_FILE")

    # Order matters: processors run sequentially on each log message
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _get_renderer(log_format),
    ]

    if log_file:
        from logging.handlers import RotatingFileHandler
        from pathlib import Path

        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(log_level)
        stderr_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(stderr_handler)

        # 10MB max, 3 backups
        file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=3)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(file_handler)

        structlog.configure(
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
    else:
        structlog.configure(
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
            cache_logger_on_first_use=True,
        )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)
