"""Tests for the admin-triggered manual broadcast."""

from __future__ import annotations

from queue_notifier import messages
from queue_notifier.broadcast.engine import BroadcastEngine
from queue_notifier.errors.channel_errors import StatsError
from queue_notifier.models import OnlineStats, Preferences, Recipient
from queue_notifier.tracker import QueueStateTracker
from queue_notifier.trigger import ManualTrigger


class _Stats:
    def __init__(self, result: OnlineStats | Exception) -> None:
        self.result = result
        self.calls = 0

    async def get_online(self) -> OnlineStats:  # noqa: ASYNC910
        self.calls += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


async def _setup(memory_store, channel, stats, *, allowed=None) -> ManualTrigger:
    await memory_store.put("1", Recipient(display_name="a", preferences=Preferences()))
    await memory_store.put("2", Recipient(display_name="b", preferences=Preferences(manual=False)))
    tracker = QueueStateTracker()
    tracker.observe(1, 3)
    tracker.observe(8, 7)
    return ManualTrigger(stats, tracker, BroadcastEngine(memory_store, channel), allowed=allowed)


class TestManualTrigger:
    async def test_broadcasts_to_manual_subscribers(self, memory_store, fake_channel) -> None:
        stats = _Stats(OnlineStats(sessions=100, in_game=40))
        trigger = await _setup(memory_store, fake_channel, stats)

        outcome = await trigger.trigger(389569299)

        assert outcome is not None
        assert outcome.sent == 1
        assert fake_channel.attempted == ["1"]
        text = fake_channel.sent[0][1]
        assert "Играет: 40" in text
        assert "Обычная: 3" in text
        assert "Highroom: 7" in text

    async def test_stats_failure_sends_nothing(self, memory_store, fake_channel) -> None:
        stats = _Stats(StatsError("down", status_code=502))
        trigger = await _setup(memory_store, fake_channel, stats)

        assert await trigger.trigger(1) is None
        assert fake_channel.attempted == []

    async def test_allow_list(self, memory_store, fake_channel) -> None:
        stats = _Stats(OnlineStats())
        trigger = await _setup(memory_store, fake_channel, stats, allowed=[10, 20])

        assert trigger.is_allowed("10")
        assert not trigger.is_allowed(30)
        assert await trigger.trigger(30) is None
        assert stats.calls == 0
        assert fake_channel.attempted == []

    def test_no_allow_list_permits_everyone(self) -> None:
        trigger = ManualTrigger(None, QueueStateTracker(), None)  # type: ignore[arg-type]
        assert trigger.is_allowed(12345)


class TestMessages:
    def test_manual_call_text(self) -> None:
        text = messages.manual_call(OnlineStats(sessions=5, in_game=2), {1: 4})
        assert text.splitlines() == [
            "🚀 *DotaClassic: Пора заходить!*",
            "👤 Играет: 2",
            "⚔️ Обычная: 4",
            "🏆 Highroom: 0",
        ]

    def test_mode_titles(self) -> None:
        assert messages.mode_title(1) == "Обычная 5х5"
        assert messages.mode_title(8) == "Highroom 5x5"
        assert messages.mode_title(3) == "режим 3"
