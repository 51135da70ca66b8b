"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from lumabank.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Send every record to stdout as one JSON object per line"""
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.addHandler(handler)

    # SQL echo stays off unless explicitly asked for
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def log_transfer(
    request_id: str,
    user_id: str,
    transaction_type: str,
    amount_cents: int,
    outcome: str,
    transaction_id: Optional[str] = None,
    reason: Optional[str] = None,
) -> None:
    """Log structured transfer/deposit outcome for analysis"""
    logging.getLogger("lumabank.transfers").info(
        "Movement %s",
        outcome,
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "movement_complete",
            "transaction_type": transaction_type,
            "amount_cents": amount_cents,
            "outcome": outcome,
            "transaction_id": transaction_id,
            "reason": reason,
        },
    )


def log_settlement(
    transaction_id: str,
    action: str,
    source: str,
    admin_id: Optional[str] = None,
) -> None:
    """Log a pending transaction reaching a terminal status"""
    logging.getLogger("lumabank.settlement").info(
        "Transaction settled",
        extra={
            "transaction_id": transaction_id,
            "step": "settlement",
            "action": action,
            "source": source,
            "admin_id": admin_id,
        },
    )
