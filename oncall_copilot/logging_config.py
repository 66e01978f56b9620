from __future__ import annotations

import logging
import sys

from pythonjsonlogger import jsonlogger


class InvestigationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "investigation_id"):
            record.investigation_id = "unknown"
        return True


def configure_logging(level: int = logging.INFO) -> None:
    handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s %(investigation_id)s"
    )
    handler.setFormatter(formatter)
    handler.addFilter(InvestigationIdFilter())
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
