from __future__ import annotations


class MonitoringException(Exception):
    """Base exception for cronwatch."""

    pass


class InvalidInputError(MonitoringException):
    """Raised for malformed caller input."""

    pass


class InvalidSlugError(InvalidInputError):
    """Raised when a ping slug is obviously malformed."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__("Invalid monitor ID")


class UnsafeURLError(InvalidInputError):
    """Raised when a URL targets internal or private infrastructure."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(reason)


class MonitorNotFoundError(MonitoringException):
    """Raised when a monitor cannot be found."""

    def __init__(self, monitor_id: int | str):
        self.monitor_id = monitor_id
        super().__init__(f"Monitor {monitor_id} not found")


class UnauthorizedError(MonitoringException):
    """Raised when a caller lacks a valid credential."""

    pass


class QuotaExceededError(MonitoringException):
    """Raised when a user already owns the maximum number of monitors."""

    def __init__(self, user_id: int, limit: int):
        self.user_id = user_id
        self.limit = limit
        super().__init__(f"Monitor limit reached. Maximum {limit} monitors allowed.")


class StorageError(MonitoringException):
    """Raised when the persistence layer fails."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Storage failure during {operation}: {reason}")


class AlertDeliveryError(MonitoringException):
    """Raised when a single alert channel cannot deliver."""

    def __init__(self, channel: str, reason: str, monitor_id: int | None = None):
        self.channel = channel
        self.reason = reason
        self.monitor_id = monitor_id
        super().__init__(reason)
