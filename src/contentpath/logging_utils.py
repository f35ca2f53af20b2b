from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

PACKAGE_LOGGER = "contentpath"
_CONFIGURED_ATTR = "_contentpath_logging_configured"
_DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s"


def parse_log_level(value: str | int | None, default: int = logging.INFO) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    text = value.strip()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    return level if isinstance(level, int) else default


def configure_contentpath_logging(
    log_file: Path,
    *,
    level: str | int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 10,
) -> Path:
    """Route logs to a rotating file and stderr.

    `level` applies to the `contentpath` loggers only; the root logger stays
    at INFO or above. Calling this again only updates the package level.
    """
    package_level = parse_log_level(level)
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(package_level)

    root = logging.getLogger()
    if getattr(root, _CONFIGURED_ATTR, False):
        return log_file

    formatter = logging.Formatter(_DEFAULT_LOG_FORMAT)
    handlers: list[logging.Handler] = []

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        handlers.append(file_handler)
    except OSError as exc:
        sys.stderr.write(f"Failed to open contentpath log file at {log_file}: {exc}\n")

    # stdout is reserved for the MCP stdio transport.
    handlers.append(logging.StreamHandler(stream=sys.stderr))

    root.handlers.clear()
    root.setLevel(max(package_level, logging.INFO))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.captureWarnings(True)
    setattr(root, _CONFIGURED_ATTR, True)
    return log_file
