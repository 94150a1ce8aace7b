"""
Structured logging configuration with trace IDs
"""
import contextvars
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from ecobid.core.config import get_settings

# Context variable to store trace ID across threads and async calls
trace_id_var = contextvars.ContextVar("trace_id", default=None)

# Domain fields copied from ``extra=`` onto the JSON record
EXTRA_FIELDS = (
    "listing_id",
    "user_id",
    "bid_id",
    "amount",
    "status",
    "attempt",
    "trigger",
    "event_type",
    "duration_ms",
)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with trace ID and additional fields"""

    def __init__(self, *args, service: str = "ecobid", environment: str = "development", **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service
        self.environment = environment

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname

        trace_id = trace_id_var.get()
        if trace_id:
            log_record["trace_id"] = trace_id

        log_record["service"] = self.service
        log_record["environment"] = self.environment

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                value = getattr(record, field)
                log_record[field] = str(value) if value is not None and not isinstance(value, (int, float)) else value


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure structured JSON logging (plain text when LOG_JSON is off)"""
    settings = get_settings()

    if settings.LOG_JSON:
        formatter: logging.Formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            service=settings.SERVICE_NAME,
            environment=settings.ENVIRONMENT,
        )
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level or settings.LOG_LEVEL)
    root_logger.handlers = [console_handler]

    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return root_logger


def get_trace_id() -> Optional[str]:
    """Get current trace ID"""
    return trace_id_var.get()


def set_trace_id(trace_id: str):
    """Set trace ID for current context"""
    trace_id_var.set(trace_id)


def generate_trace_id() -> str:
    """Generate a new trace ID"""
    return str(uuid.uuid4())
