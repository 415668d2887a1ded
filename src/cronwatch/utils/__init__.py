from __future__ import annotations

from cronwatch.utils.exceptions import (
    AlertDeliveryError,
    InvalidInputError,
    InvalidSlugError,
    MonitoringException,
    MonitorNotFoundError,
    QuotaExceededError,
    StorageError,
    UnauthorizedError,
    UnsafeURLError,
)
from cronwatch.utils.logging import get_logger, setup_logging

__all__ = [
    "setup_logging",
    "get_logger",
    "MonitoringException",
    "InvalidInputError",
    "InvalidSlugError",
    "UnsafeURLError",
    "MonitorNotFoundError",
    "UnauthorizedError",
    "QuotaExceededError",
    "StorageError",
    "AlertDeliveryError",
]
