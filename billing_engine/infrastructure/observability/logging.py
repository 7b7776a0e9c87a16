"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from billing_engine.config import settings
from billing_engine.domain.models import GeneratedSchedule, PaymentRequest
from billing_engine.utils.money import format_minor_units


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_schedule(request_id: str, schedule: GeneratedSchedule, duration_ms: float) -> None:
    """Log a generated schedule for support and analysis"""
    logging.info(
        "Schedule generated",
        extra={
            "request_id": request_id,
            "step": "schedule_generated",
            "cadence": schedule.cadence.value,
            "occurrence_count": len(schedule.occurrences),
            "total": format_minor_units(schedule.total_cents, schedule.currency),
            "first_due_date": schedule.occurrences[0].due_date.isoformat(),
            "end_date": schedule.end_date.isoformat(),
            "duration_ms": duration_ms,
        },
    )


def log_allocation(request_id: str, payment: PaymentRequest, duration_ms: float) -> None:
    """Log how a payment was split, before it goes to the payments API"""
    logging.info(
        "Payment allocated",
        extra={
            "request_id": request_id,
            "step": "payment_allocated",
            "total": format_minor_units(payment.total_cents, payment.currency),
            "target_ids": payment.target_ids,
            "leftover_credit": format_minor_units(payment.leftover_credit_cents, payment.currency),
            "apply_to_all": payment.apply_to_all,
            "duration_ms": duration_ms,
        },
    )
