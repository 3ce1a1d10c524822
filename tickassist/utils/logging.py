"""Logging configuration."""

import logging
import os
import re
import sys
from typing import Any

from pydantic import BaseModel

REDACTED = "[REDACTED]"
MAX_LOGGED_VALUE_LENGTH = 200

SENSITIVE_KEYS = ("password", "token", "api_key", "apikey", "secret", "authorization", "cookie")

# Bearer tokens, vendor API keys and the TickTick session cookie
SECRET_PATTERNS = [
    re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
    re.compile(r"((?:x-api-key|x-goog-api-key|X-Ticktick-Session)['\"]?\s*[:=]\s*['\"]?)[^\s'\",}]+", re.IGNORECASE),
    re.compile(r"(\bt=)[A-Za-z0-9._-]+"),
    re.compile(r"()\b(?:sk-ant-|sk-|xai-)[A-Za-z0-9_-]{8,}"),
]


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    redact_secrets: bool = True


def redact(text: str) -> str:
    """Mask credentials that may appear in a log line."""
    for pattern in SECRET_PATTERNS:
        text = pattern.sub(lambda match: f"{match.group(1)}{REDACTED}", text)
    return text


class SecretRedactingFilter(logging.Filter):
    """Rewrites records so tokens and API keys never reach the log output."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def sanitize_arguments(arguments: dict[str, Any]) -> dict[str, Any]:
    """Copy of tool arguments that is safe and short enough to log."""
    sanitized: dict[str, Any] = {}
    for key, value in arguments.items():
        if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
            sanitized[key] = REDACTED
        elif isinstance(value, str) and len(value) > MAX_LOGGED_VALUE_LENGTH:
            sanitized[key] = f"{value[:MAX_LOGGED_VALUE_LENGTH]}... ({len(value)} chars)"
        else:
            sanitized[key] = value
    return sanitized


def setup_logging(config: LogConfig | None = None) -> None:
    """Set up logging configuration for the application."""
    if config is None:
        config = LogConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            redact_secrets=os.getenv("TICKASSIST_LOG_SECRETS", "").lower() not in ("1", "true"),
        )

    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )
    if config.redact_secrets:
        for handler in logging.getLogger().handlers:
            handler.addFilter(SecretRedactingFilter())

    # Request lines from the HTTP clients are too chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)
        level: Optional explicit level, defaults to the LOG_LEVEL env var

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    log_level = level if level else os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(log_level.upper())

    return logger
