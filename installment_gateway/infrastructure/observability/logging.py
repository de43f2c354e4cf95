"""Structured JSON logging for plan and payment events"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from installment_gateway.config import settings

access_logger = logging.getLogger("installment_gateway.access")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines carrying UTC timestamp, level, service name and any extra fields"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Send every record through one JSON handler on stdout"""
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.addHandler(handler)

    # Access lines come from our middleware
    logging.getLogger("uvicorn.access").propagate = False


def log_request(request_id: str, method: str, path: str, status: int, duration_ms: float) -> None:
    access_logger.info(
        "Request handled",
        extra={
            "request_id": request_id,
            "method": method,
            "path": path,
            "status": status,
            "duration_ms": round(duration_ms, 2),
        },
    )


def log_plan_created(
    request_id: str,
    plan_id: str,
    customer_id: str,
    total_amount: int,
    installment_count: int,
    created_by: Optional[str],
) -> None:
    logging.info(
        "Plan created",
        extra={
            "request_id": request_id,
            "plan_id": plan_id,
            "customer_id": customer_id,
            "step": "plan_created",
            "total_amount": total_amount,
            "installment_count": installment_count,
            "created_by": created_by,
        },
    )


def log_payment(
    request_id: str,
    step: str,
    plan_id: str,
    installment_number: int,
    paid_amount: Optional[int],
    difference: int,
    duration_ms: float,
) -> None:
    """Log structured payment outcome (recorded / updated / reversed)"""
    logging.info(
        "Payment reconciled",
        extra={
            "request_id": request_id,
            "plan_id": plan_id,
            "installment_number": installment_number,
            "step": step,
            "paid_amount": paid_amount,
            "difference": difference,
            "duration_ms": duration_ms,
        },
    )
