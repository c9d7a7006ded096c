"""
Logging setup for AgentChat.

Console records are human-readable with a colored level; file records are
one JSON object per line. Anything bound through `ContextLogger` (session id,
model, ...) lands in the record's `extra_fields` and becomes top-level keys
in the JSON output.

Chat payloads can carry credentials and multi-megabyte base64 images, so
`scrub_payload` and `clip` are applied before a payload reaches a log line.
"""

import json
import logging
import logging.handlers
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
PLAIN_FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

SENSITIVE_KEYS = ("password", "secret", "authorization", "api_key", "api-key", "access_token")
MASK = "***FILTERED***"

_DATA_URL = re.compile(r"data:(?P<media_type>[\w.+-]+/[\w.+-]+);base64,(?P<data>[A-Za-z0-9+/=]+)")


class ColoredFormatter(logging.Formatter):
    """Console formatter; only the level name is colored."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Other handlers share the record; color a copy
        colored = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, "")
        colored.levelname = f"{color}{record.levelname:8s}{self.RESET}"
        return super().format(colored)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with bound context as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(path: str, level: int, json_format: bool) -> logging.Handler:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # 10MB per file, 5 backups
    handler = logging.handlers.RotatingFileHandler(
        filename=log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(config: Any) -> None:
    """
    Configure the root logger from settings.

    Safe to call more than once: existing root handlers are replaced.

    Args:
        config: Settings object (log_level, log_console_enabled,
            log_file_enabled, log_file_path, log_json_format)
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    if config.log_console_enabled:
        root.addHandler(_console_handler(level))
    if config.log_file_enabled:
        root.addHandler(_file_handler(config.log_file_path, level, config.log_json_format))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info(
        f"Logging initialized: level={config.log_level.upper()}, "
        f"console={config.log_console_enabled}, file={config.log_file_enabled}"
    )


class ContextLogger(logging.LoggerAdapter):
    """
    Adapter that stamps bound context onto every record.

    Usage:
        log = ContextLogger(logger, {"session_id": sid})
        log.info("Chat finished")
        log.bind(model="m1").info("...")  # session_id and model both attached

    Per-call `extra={"extra_fields": {...}}` values win over bound ones.
    """

    def bind(self, **fields: Any) -> "ContextLogger":
        return ContextLogger(self.logger, {**self.extra, **fields})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.setdefault("extra", {})
        extra["extra_fields"] = {**self.extra, **extra.get("extra_fields", {})}
        return msg, kwargs


def _redact_data_urls(text: str) -> str:
    return _DATA_URL.sub(
        lambda m: f"data:{m.group('media_type')};base64,<{len(m.group('data'))} chars>",
        text,
    )


def scrub_payload(data: Any, sensitive_keys: Optional[Iterable[str]] = None) -> Any:
    """
    Copy of `data` that is safe to log.

    Values under sensitive keys are masked and inline base64 image URLs are
    shortened to their media type and length.

    Args:
        data: Decoded JSON (dict, list or scalar)
        sensitive_keys: Substrings of key names to mask (default SENSITIVE_KEYS)
    """
    keys = tuple(sensitive_keys) if sensitive_keys is not None else SENSITIVE_KEYS

    if isinstance(data, dict):
        return {
            key: MASK if any(k in key.lower() for k in keys) else scrub_payload(value, keys)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [scrub_payload(item, keys) for item in data]
    if isinstance(data, str):
        return _redact_data_urls(data)
    return data


def clip(text: str, limit: int = 5000) -> str:
    """Shorten text beyond `limit` characters, noting the full length."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... (truncated, total length: {len(text)})"
