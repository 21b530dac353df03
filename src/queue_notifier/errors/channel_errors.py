"""Errors raised by the outbound channels (Telegram delivery, stats API)."""

from __future__ import annotations

from queue_notifier.errors.notifier_errors import NotifierError

# Fragments of Bot API error descriptions meaning the chat will never accept
# messages from us again.
_UNREACHABLE_MARKERS = (
    "blocked",
    "deactivated",
    "chat not found",
    "user not found",
    "kicked",
    "not enough rights",
    "have no rights",
)


class DeliveryError(NotifierError):
    """A single message could not be delivered to one recipient."""

    def __init__(self, recipient_id: str, reason: str) -> None:
        super().__init__(f"delivery to {recipient_id} failed: {reason}", code="delivery-error")
        self.recipient_id = recipient_id
        self.reason = reason

    @property
    def permanent(self) -> bool:
        """Whether the reason text says the recipient is unreachable for good."""
        return is_unreachable(self.reason)


class StatsError(NotifierError):
    """The online statistics endpoint failed or returned a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message, code="stats-error")
        self.status_code = status_code


def is_unreachable(reason: str) -> bool:
    """Classify a delivery failure reason as terminal recipient unavailability."""
    text = reason.lower()
    return any(marker in text for marker in _UNREACHABLE_MARKERS)
