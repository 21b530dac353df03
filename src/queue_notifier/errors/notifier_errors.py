"""NotifierError — base exception class for all queue-notifier errors."""

from __future__ import annotations


class NotifierError(Exception):
    """Base error for all queue-notifier operations.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code string.
    """

    def __init__(self, message: str, *, code: str = "notifier-error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigError(NotifierError):
    """Required startup configuration is missing or invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="config-error")
