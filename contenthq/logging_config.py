"""
ContentHQ Logging Configuration
Structured logging with context for debugging and monitoring
"""
import logging
import sys
import json
import re
import traceback
from datetime import datetime, timezone
from typing import Optional
from functools import wraps
import time
import os

# ============================================================
# LOG LEVELS
# ============================================================

LOG_LEVEL = os.environ.get("CONTENTHQ_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("CONTENTHQ_LOG_FORMAT", "json")  # json or text

# Approval tokens are bearer credentials and never appear in log output
_APPROVAL_PATH_RE = re.compile(r"(/approvals/)([^/?]+)")
_TOKEN_QUERY_RE = re.compile(r"(token=)([^&\s]+)")


def mask_token(token: Optional[str]) -> str:
    """Redact a bearer token down to a short, non-replayable prefix."""
    if not token:
        return ""
    return f"{token[:4]}…"


def redact_tokens(text: str) -> str:
    """Mask approval tokens embedded in a URL path or query string."""
    text = _APPROVAL_PATH_RE.sub(lambda m: m.group(1) + mask_token(m.group(2)), text)
    return _TOKEN_QUERY_RE.sub(lambda m: m.group(1) + mask_token(m.group(2)), text)


# ============================================================
# STRUCTURED LOGGING
# ============================================================

class StructuredLogger:
    """Logger that outputs structured JSON logs"""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

        # Remove existing handlers
        self.logger.handlers = []

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter() if LOG_FORMAT == "json" else TextFormatter())
        self.logger.addHandler(handler)

    def _log(self, level: str, message: str, **context):
        extra = {
            "context": context,
            "logger_name": self.name,
        }
        getattr(self.logger, level.lower())(message, extra=extra)

    def debug(self, message: str, **context):
        self._log("debug", message, **context)

    def info(self, message: str, **context):
        self._log("info", message, **context)

    def warning(self, message: str, **context):
        self._log("warning", message, **context)

    def error(self, message: str, error: Optional[Exception] = None, **context):
        if error:
            context["error_type"] = type(error).__name__
            context["error_message"] = str(error)
            context["traceback"] = traceback.format_exc()
        self._log("error", message, **context)

    def critical(self, message: str, error: Optional[Exception] = None, **context):
        if error:
            context["error_type"] = type(error).__name__
            context["error_message"] = str(error)
            context["traceback"] = traceback.format_exc()
        self._log("critical", message, **context)


class StructuredFormatter(logging.Formatter):
    """Formats logs as JSON"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": getattr(record, "logger_name", record.name),
            "message": record.getMessage(),
        }

        if hasattr(record, "context"):
            log_data.update(record.context)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Formats logs as readable text"""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S")

        parts = [
            f"{color}[{timestamp}]",
            f"[{record.levelname}]",
            f"{self.RESET}{record.getMessage()}",
        ]

        if hasattr(record, "context") and record.context:
            context_str = " ".join(f"{k}={v}" for k, v in record.context.items() if k != "traceback")
            if context_str:
                parts.append(f"\033[90m({context_str}){self.RESET}")

        return " ".join(parts)


# ============================================================
# FUNCTION TIMING DECORATOR
# ============================================================

def timed(logger: StructuredLogger):
    """Decorator to log function execution time"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = (time.time() - start) * 1000
                logger.debug(
                    f"{func.__name__} raised {type(e).__name__}",
                    function=func.__name__,
                    duration_ms=round(duration, 2),
                )
                raise
            duration = (time.time() - start) * 1000
            logger.debug(
                f"{func.__name__} completed",
                function=func.__name__,
                duration_ms=round(duration, 2),
            )
            return result

        return wrapper

    return decorator


# ============================================================
# LOGGER INSTANCES
# ============================================================

api_logger = StructuredLogger("contenthq.api")
approvals_logger = StructuredLogger("contenthq.approvals")
notifier_logger = StructuredLogger("contenthq.notifier")
db_logger = StructuredLogger("contenthq.db")