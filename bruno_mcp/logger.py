"""Logging setup for bruno_mcp.

Logs go to stderr; stdout carries the RPC protocol when serving.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config.schema import LoggingConfig, SecurityConfig
from .security import mask_secrets

LOGGER_NAME = "bruno_mcp"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

logger = logging.getLogger(LOGGER_NAME)


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """Configure the bruno_mcp logger.

    Replaces handlers from any previous call, so it is safe to call again
    after the configuration changes.

    Args:
        config: Logging settings; defaults to info level, text format

    Returns:
        The configured package logger
    """
    config = config or LoggingConfig()
    formatter: logging.Formatter
    if config.format == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.setLevel(_LEVELS.get(config.level, logging.INFO))
    logger.propagate = False
    return logger


def log_tool_execution(
    tool_name: str,
    params: Dict[str, Any],
    duration_ms: float,
    success: bool,
    security: Optional[SecurityConfig] = None,
) -> None:
    """Log one tool call with its (masked) parameters."""
    masked_params = mask_secrets(json.dumps(params, default=str), security)
    level = logging.INFO if success else logging.WARNING
    logger.log(
        level,
        "Tool %s %s in %.0fms params=%s",
        tool_name,
        "succeeded" if success else "failed",
        duration_ms,
        masked_params,
        extra={"context": {"tool": tool_name, "durationMs": duration_ms, "success": success}},
    )


def log_security_event(
    event_type: str,
    details: str,
    severity: str = "info",
    security: Optional[SecurityConfig] = None,
) -> None:
    """Log an audit event such as ``access_denied`` or ``env_var_validation``."""
    level = _LEVELS.get(severity, logging.INFO)
    logger.log(
        level,
        "Security event [%s]: %s",
        event_type,
        mask_secrets(details, security),
        extra={"context": {"securityEvent": event_type, "severity": severity}},
    )
