"""
Structured Logging Configuration

Provides JSON-formatted logging with:
- Request ID tracking
- Entity context (booking, hold, blockage)
- Structured output for log aggregation
"""

import logging
import json
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Any, Dict
from contextvars import ContextVar

# Context variable for request tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


class JSONFormatter(logging.Formatter):
    """
    JSON formatter: one object per line, parseable by log aggregators.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        log_data["module"] = record.module
        log_data["function"] = record.funcName
        log_data["line"] = record.lineno

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_data'):
            log_data["data"] = record.extra_data

        if hasattr(record, 'duration_ms'):
            log_data["duration_ms"] = record.duration_ms

        if hasattr(record, 'entity_type'):
            log_data["entity_type"] = record.entity_type
        if hasattr(record, 'entity_id'):
            log_data["entity_id"] = record.entity_id

        return json.dumps(log_data, ensure_ascii=False, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger adapter with booking-domain helpers.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get('extra', {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs

    def log_with_context(
        self,
        level: int,
        msg: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        duration_ms: Optional[float] = None,
        **extra_data
    ):
        """Log with additional structured context."""
        extra = {}
        if entity_type:
            extra['entity_type'] = entity_type
        if entity_id:
            extra['entity_id'] = entity_id
        if duration_ms is not None:
            extra['duration_ms'] = duration_ms
        if extra_data:
            extra['extra_data'] = extra_data

        self.log(level, msg, extra=extra)

    def booking_created(self, booking_id: str, guest_name: str, total_price: Decimal, room_ids=None):
        self.log_with_context(
            logging.INFO,
            f"Booking created: {guest_name}",
            entity_type="booking",
            entity_id=booking_id,
            guest_name=guest_name,
            total_price=str(total_price),
            room_ids=list(room_ids or []),
        )

    def booking_updated(self, booking_id: str, repriced: bool, total_price: Decimal):
        self.log_with_context(
            logging.INFO,
            f"Booking updated: {booking_id}",
            entity_type="booking",
            entity_id=booking_id,
            repriced=repriced,
            total_price=str(total_price),
        )

    def booking_deleted(self, booking_id: str, by_admin: bool):
        self.log_with_context(
            logging.INFO,
            f"Booking deleted: {booking_id}",
            entity_type="booking",
            entity_id=booking_id,
            by_admin=by_admin,
        )

    def hold_created(self, proposal_id: str, session_id: str, room_ids, expires_at: datetime):
        self.log_with_context(
            logging.INFO,
            f"Hold created: {proposal_id}",
            entity_type="proposed_booking",
            entity_id=proposal_id,
            session_id=session_id,
            room_ids=list(room_ids),
            expires_at=expires_at.isoformat(),
        )

    def holds_purged(self, count: int):
        level = logging.INFO if count else logging.DEBUG
        self.log_with_context(
            level,
            f"Purged {count} expired holds",
            entity_type="proposed_booking",
            purged=count,
        )

    def price_discrepancy(self, booking_id: str, stored: Decimal, computed: Decimal):
        """A locked booking's stored total differs from today's price tables."""
        self.log_with_context(
            logging.WARNING,
            f"Price mismatch on locked booking {booking_id}: stored {stored}, computed {computed}",
            entity_type="booking",
            entity_id=booking_id,
            stored_total=str(stored),
            computed_total=str(computed),
        )

    def api_request(self, method: str, path: str, status_code: int, duration_ms: float):
        self.log_with_context(
            logging.INFO,
            f"{method} {path} - {status_code}",
            duration_ms=duration_ms,
            method=method,
            path=path,
            status_code=status_code
        )


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_uvicorn: bool = True
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format (True for production)
        include_uvicorn: Also configure uvicorn loggers
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    logging.getLogger("chalet").setLevel(log_level)

    if include_uvicorn:
        for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
            logging.getLogger(logger_name).handlers = [handler]

    # Reduce noise from third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for the given module."""
    return StructuredLogger(logging.getLogger(name), {})


def set_request_context(request_id: str):
    request_id_var.set(request_id)


def clear_request_context():
    request_id_var.set('')
