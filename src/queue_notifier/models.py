"""Domain models — recipients, preferences, queue decisions, delivery outcomes.

Persisted records (``Recipient``) are pydantic models so that stored JSON is
validated on read. Ephemeral values passed between components are frozen
dataclasses.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class Category(enum.StrEnum):
    """Notification categories a recipient can opt in or out of."""

    NORMAL = "normal"
    HIGHROOM = "highroom"
    MANUAL = "manual"


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------


class Preferences(BaseModel):
    """Per-category opt-in flags. The baseline is everything enabled."""

    model_config = ConfigDict(extra="ignore")

    normal: bool = True
    highroom: bool = True
    manual: bool = True

    def enabled(self, category: Category | str) -> bool:
        """Return whether *category* is switched on."""
        return bool(getattr(self, Category(category).value))

    def flipped(self, category: Category | str) -> Preferences:
        """Return a copy with exactly one flag inverted."""
        key = Category(category).value
        return self.model_copy(update={key: not getattr(self, key)})


class Recipient(BaseModel):
    """A subscriber record as stored in the settings store.

    Serialised with the field names the bot has always written
    (``username`` / ``settings``) so existing Redis data stays readable.
    ``preferences`` is ``None`` for legacy records written before
    notification settings existed.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    display_name: str = Field(default="n/a", alias="username")
    preferences: Preferences | None = Field(default=None, alias="settings")

    @property
    def effective_preferences(self) -> Preferences:
        """Preferences, falling back to the baseline for legacy records."""
        return self.preferences if self.preferences is not None else Preferences()

    def to_json(self) -> str:
        """Serialise using the stored field names."""
        return self.model_dump_json(by_alias=True)


# ---------------------------------------------------------------------------
# Ephemeral values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NotificationDecision:
    """A queue crossed into the near-full band and should be announced."""

    mode: int
    count: int
    category: Category


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one broadcast: ``total`` counts attempted (eligible) recipients."""

    sent: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.sent + self.failed


@dataclass(frozen=True)
class OnlineStats:
    """Point-in-time server statistics."""

    sessions: int = 0
    in_game: int = 0
