"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from negotiation_gateway.config import settings


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


def log_commit(
    request_id: str,
    clinic_id: str,
    negotiation_id: str,
    negotiation_code: str,
    attempts: int,
    negotiated_cents: int,
    duration_ms: float,
) -> None:
    """Log structured commit outcome for auditing"""
    logging.info(
        "Negotiation committed",
        extra={
            "request_id": request_id,
            "clinic_id": clinic_id,
            "step": "negotiation_commit",
            "negotiation_id": negotiation_id,
            "negotiation_code": negotiation_code,
            "attempts": attempts,
            "negotiated_cents": negotiated_cents,
            "duration_ms": duration_ms,
        },
    )


def log_code_collision(clinic_id: str, negotiation_code: str, attempt: int) -> None:
    logging.warning(
        "Negotiation code collision",
        extra={
            "clinic_id": clinic_id,
            "step": "code_allocation",
            "negotiation_code": negotiation_code,
            "attempt": attempt,
        },
    )
