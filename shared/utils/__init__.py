"""Shared utilities for upload services."""

from shared.utils.logging import configure_logging, get_correlation_id, get_logger, set_correlation_id
from shared.utils.db import close_db, get_db_session, init_db
from shared.utils.metrics import MetricsMiddleware, create_counter, create_histogram

__all__ = [
    "configure_logging",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
    "close_db",
    "get_db_session",
    "init_db",
    "MetricsMiddleware",
    "create_counter",
    "create_histogram",
]
