"""Structured JSON logging"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from finance_ledger.config import settings


class LedgerJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines tagged with a UTC timestamp, level and service name"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """
    Send all records to stdout as JSON.

    SQLAlchemy's engine logger stays at WARNING unless db_echo is set.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(LedgerJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.db_echo else logging.WARNING)


def log_installment_payment(
    owner_id: str,
    purchase_id: str,
    installment_number: int,
    paid_installments: int,
    total_installments: int,
    completed: bool,
) -> None:
    """Audit line for one applied installment payment"""
    logging.getLogger("finance_ledger.installments").info(
        "Installment payment recorded",
        extra={
            "owner_id": owner_id,
            "purchase_id": purchase_id,
            "step": "installment_paid",
            "installment_number": installment_number,
            "progress": f"{paid_installments}/{total_installments}",
            "completed": completed,
        },
    )
