"""
Structured logging configuration for QRShield.

Provides JSON-formatted logs suitable for log aggregation services
like Elasticsearch, Datadog, CloudWatch, etc.
"""

import json
import logging
import sys
import time
import traceback
from collections import defaultdict, deque
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Any, Deque, Dict, Optional

from qrshield.config import settings


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "extra_data"):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        log_data["environment"] = settings.environment

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """
    Wrapper for structured logging with additional context.

    Usage:
        logger = StructuredLogger("qrshield.service")
        logger.info("QR analysed", data_type="url", risk_score=45)
        logger.error("Callback failed", exc_info=True, callback="notify")
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, exc_info: bool = False, **kwargs):
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={"extra_data": kwargs} if kwargs else None,
            stacklevel=3,
        )

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs):
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def critical(self, message: str, **kwargs):
        self._log(logging.CRITICAL, message, **kwargs)


def payload_preview(data: str, limit: int = 64) -> str:
    """Truncate payload text before it goes into a log line."""
    if len(data) <= limit:
        return data
    return data[:limit] + "..."


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
):
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (True for prod, False for dev)
        log_file: Optional file path for file logging
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        console_handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
        )
        console_handler.setFormatter(formatter)

    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(getattr(logging, level.upper()))
        file_handler.setFormatter(JSONFormatter())  # Always JSON for files
        root_logger.addHandler(file_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)


# ============== METRICS ==============

TIMING_WINDOW = 1000


def _summarize(values) -> Dict[str, Any]:
    ordered = sorted(values)
    count = len(ordered)
    return {
        "count": count,
        "min": ordered[0],
        "max": ordered[-1],
        "avg": sum(ordered) / count,
        "p50": ordered[count // 2],
        "p95": ordered[int(count * 0.95)] if count >= 20 else None,
    }


class MetricsCollector:
    """
    In-process counters and latency samples.

    Timings keep the most recent TIMING_WINDOW samples per name.

    Usage:
        metrics = MetricsCollector()
        metrics.increment("analysis.url.total")
        metrics.timing("analysis.url.latency", 0.0004)
    """

    def __init__(self):
        self._counters: Dict[str, int] = defaultdict(int)
        self._timings: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=TIMING_WINDOW))
        self._start_time = time.time()

    def increment(self, name: str, value: int = 1):
        self._counters[name] += value

    def timing(self, name: str, value: float):
        self._timings[name].append(value)

    def counters_with_prefix(self, prefix: str) -> Dict[str, int]:
        return {k: v for k, v in self._counters.items() if k.startswith(prefix)}

    def get_stats(self) -> Dict[str, Any]:
        return {
            "uptime_seconds": time.time() - self._start_time,
            "counters": dict(self._counters),
            "timings": {name: _summarize(v) for name, v in self._timings.items() if v},
        }

    def reset(self):
        self._counters.clear()
        self._timings.clear()


# Global metrics instance
metrics = MetricsCollector()


# ============== DECORATORS ==============


def track_analysis(func):
    """
    Count analyses per data type and risk level, and time them.

    The wrapped function must return a QRSecurityAnalysis.
    """
    def _record(result, duration: float):
        data_type = result.data_type.value
        metrics.increment("analysis.total")
        metrics.increment(f"analysis.{data_type}.total")
        metrics.increment(f"analysis.{data_type}.risk.{result.risk_level.value}")
        metrics.timing(f"analysis.{data_type}.latency", duration)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        _record(result, time.perf_counter() - start)
        return result

    return wrapper


def init_logging():
    """Initialize logging based on environment settings."""
    setup_logging(
        level=settings.effective_log_level,
        json_format=settings.is_production,
        log_file="logs/qrshield.log" if settings.is_production else None,
    )
