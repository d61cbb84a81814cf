"""
Logging for the code-merge MCP server.

stdout carries the MCP JSON-RPC stream, so every handler installed here
writes to stderr or to a file. Output is JSON inside containers (or when
CODEMERGE_LOG_JSON=true) and plain text otherwise. A TRACE level below DEBUG
is registered for per-entry traversal and cache messages.

Environment:
    CODEMERGE_LOG_LEVEL / LOG_LEVEL   TRACE, DEBUG, INFO, WARNING, ERROR
    CODEMERGE_LOG_FILE                additional rotating log file
    CODEMERGE_LOG_JSON                force JSON (true) or text (false)
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Marks handlers owned by configure_logging() so reconfiguring replaces only them
_OWNED_ATTR = '_codemerge_handler'


def _trace(self, message, *args, **kwargs):
    if self.isEnabledFor(TRACE_LEVEL):
        self._log(TRACE_LEVEL, message, args, **kwargs)


def add_trace_to_logger():
    """Make logger.trace() available on every Logger"""
    if not hasattr(logging.Logger, 'trace'):
        logging.Logger.trace = _trace


add_trace_to_logger()


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for container log collectors"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'pid': os.getpid(),
        }
        context = getattr(record, 'context', None)
        if context:
            entry['context'] = context
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def resolve_level(name: Optional[str]) -> int:
    """Map a level name to its number; unknown names give INFO"""
    name = (name or 'INFO').upper()
    if name == 'TRACE':
        return TRACE_LEVEL
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _use_json() -> bool:
    forced = os.environ.get('CODEMERGE_LOG_JSON')
    if forced is not None:
        return forced.strip().lower() in ('1', 'true', 'yes')
    return os.path.exists('/.dockerenv') or os.environ.get('DOCKER_CONTAINER', '').lower() == 'true'


def _file_handler(log_file: str, rotate: bool, max_bytes: int, backup_count: int) -> logging.Handler:
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    if rotate:
        return RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    return logging.FileHandler(path)


def configure_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    enable_rotation: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> int:
    """
    Install the server's log handlers on the root logger.

    Safe to call more than once: handlers from an earlier call are replaced,
    handlers installed by anyone else are left alone.

    Args:
        log_level: Level name; defaults to CODEMERGE_LOG_LEVEL, then LOG_LEVEL, then INFO
        log_file: Extra log file; defaults to CODEMERGE_LOG_FILE
        enable_rotation: Rotate the log file at ``max_bytes``
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files to keep

    Returns:
        The numeric level that was applied
    """
    level = resolve_level(log_level or os.environ.get('CODEMERGE_LOG_LEVEL') or os.environ.get('LOG_LEVEL'))
    json_output = _use_json()

    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _OWNED_ATTR, False)]:
        root.removeHandler(handler)
        handler.close()

    handlers = [logging.StreamHandler(sys.stderr)]
    log_file = log_file or os.environ.get('CODEMERGE_LOG_FILE')
    if log_file:
        handlers.append(_file_handler(log_file, enable_rotation, max_bytes, backup_count))

    for handler in handlers:
        handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(TEXT_FORMAT))
        setattr(handler, _OWNED_ATTR, True)
        root.addHandler(handler)

    root.setLevel(level)
    # The MCP SDK logs every request at INFO
    logging.getLogger('mcp').setLevel(max(level, logging.WARNING))

    logging.getLogger('code-merge-mcp').debug(
        f"Logging configured - Level: {logging.getLevelName(level)}, JSON: {json_output}, File: {log_file or '-'}"
    )
    return level


def get_logger(name: str) -> logging.Logger:
    """Get a logger with trace() available"""
    add_trace_to_logger()
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """
    Log a message with structured fields.

    The fields appear under "context" in JSON output and are dropped by the
    text formatter.
    """
    logger.log(level, message, extra={'context': context} if context else None)
