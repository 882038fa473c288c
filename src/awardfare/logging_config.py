"""
Logging setup for processes embedding the aggregator.

Library modules only ever call `logging.getLogger(__name__)`; the host process
calls `configure_logging()` once at startup. Every record carries the id of
the aggregation it belongs to (`search_id`), including records emitted from
provider worker threads.
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

from pythonjsonlogger.json import JsonFormatter


_search_id_ctx: ContextVar[Optional[str]] = ContextVar("search_id", default=None)

_HANDLER_NAME = "awardfare"


def new_search_id() -> str:
    return f"srch-{uuid.uuid4().hex[:12]}"


def get_search_id() -> Optional[str]:
    return _search_id_ctx.get()


class search_id_context:
    """Binds a search id to the current context for the duration of a block."""

    def __init__(self, search_id: Optional[str] = None):
        self.search_id = search_id or new_search_id()
        self.token = None

    def __enter__(self) -> str:
        self.token = _search_id_ctx.set(self.search_id)
        return self.search_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        _search_id_ctx.reset(self.token)


class SearchIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.search_id = get_search_id() or "none"
        return True


class CredentialRedactionFilter(logging.Filter):
    """Provider cookies and tokens must never reach log sinks."""

    SENSITIVE_KEYS = {"cookie", "cookies", "token", "bearer_token", "authorization", "password"}

    def filter(self, record: logging.LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE_KEYS:
                setattr(record, key, "[REDACTED]")
        return True


class AwardfareJsonFormatter(JsonFormatter):
    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["search_id"] = getattr(record, "search_id", "none")
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def configure_logging(level: str = "INFO", json: bool = False) -> logging.Handler:
    """
    Install (or replace) the awardfare handler on the root logger.
    Calling it again swaps the handler instead of stacking a second one.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if handler.get_name() == _HANDLER_NAME:
            root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)

    if json:
        formatter: logging.Formatter = AwardfareJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(search_id)s %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(search_id)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    handler.addFilter(SearchIdFilter())
    handler.addFilter(CredentialRedactionFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return handler
