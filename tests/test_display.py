"""Tests for summary rendering and the summary message upsert."""

import asyncio

from giveaway_tracker.aggregation import DAY_MS
from giveaway_tracker.display import DisplaySynchronizer, build_summary
from giveaway_tracker.models import GiveawayEntry

NOW = 1_700_000_000_000


def _fields(view):
    return {f.name: f.value for f in view.fields}


def test_empty_summary(entry_store, config_store):
    view = build_summary(entry_store.snapshot(), config_store.config, NOW)
    fields = _fields(view)
    assert view.title == "Giveaway Data Track - Summary"
    assert view.footer == "Updated every 30 minutes"
    assert fields["Totals (USD)"] == "All time: $0.00\nWeekly: $0.00"
    assert fields["Prize Distribution"] == "Tip: $0.00\nStream Giveaway: $0.00\nOthers: $0.00"
    assert fields["Leaderboard (top)"] == "No winners tracked yet"


def test_summary_contents(entry_store, config_store):
    config_store.update(buckets={"weekly": True, "biweekly": True, "monthly": True, "custom": [60]})
    entry_store.append(GiveawayEntry("1", "a", NOW - 2 * DAY_MS, "TRX", 100, 50, winner_id="u1"))
    entry_store.append(GiveawayEntry("1", "b", NOW - 20 * DAY_MS, "BTC", 1, 200, winner_id="u2", source="Tip"))
    entry_store.append(GiveawayEntry("1", "c", NOW - 50 * DAY_MS, "ETH", 1, 10.5, winner_id="u1"))

    fields = _fields(build_summary(entry_store.snapshot(), config_store.config, NOW))
    assert fields["Totals (USD)"].splitlines() == [
        "All time: $260.50",
        "Weekly: $50.00",
        "Biweekly: $50.00",
        "Monthly: $250.00",
        "Last 60 days: $260.50",
    ]
    assert "Tip: $200.00" in fields["Prize Distribution"]
    assert "Others: $60.50" in fields["Prize Distribution"]
    assert fields["Leaderboard (top)"].splitlines() == [
        "#1 <@u2> - $200.00 (1 win)",
        "#2 <@u1> - $60.50 (2 wins)",
    ]


def test_leaderboard_shows_top_ten(entry_store, config_store):
    for i in range(12):
        entry_store.append(GiveawayEntry("1", f"m{i}", NOW, "TRX", 1, float(i + 1), winner_id=f"u{i}"))
    lines = _fields(build_summary(entry_store.snapshot(), config_store.config, NOW))["Leaderboard (top)"]
    assert len(lines.splitlines()) == 10
    assert lines.splitlines()[0].startswith("#1 <@u11>")


class TestSync:
    def test_noop_without_display_channel(self, config_store, entry_store, publisher):
        sync = DisplaySynchronizer(config_store, entry_store, publisher)
        assert asyncio.run(sync.sync()) is None
        assert publisher.sent == 0

    def test_creates_then_edits(self, config_store, entry_store, publisher):
        config_store.update(display_channel_id="55")
        sync = DisplaySynchronizer(config_store, entry_store, publisher)

        first = asyncio.run(sync.sync())
        assert first == "summary-1"
        assert config_store.config.display_message_id == "summary-1"

        assert asyncio.run(sync.sync()) == "summary-1"
        assert publisher.sent == 1
        assert publisher.edited == 1

    def test_recreates_deleted_message(self, config_store, entry_store, publisher):
        config_store.update(display_channel_id="55")
        config_store.set_display_message("deleted")
        sync = DisplaySynchronizer(config_store, entry_store, publisher)
        assert asyncio.run(sync.sync()) == "summary-1"
        assert config_store.config.display_message_id == "summary-1"

    def test_unreachable_channel_is_not_fatal(self, config_store, entry_store, publisher):
        config_store.update(display_channel_id="55")
        publisher.unreachable = True
        sync = DisplaySynchronizer(config_store, entry_store, publisher)
        assert asyncio.run(sync.sync()) is None
        assert config_store.config.display_message_id is None


def test_overlapping_syncs_post_one_message(config_store, entry_store, publisher):
    config_store.update(display_channel_id="55")
    real_send = publisher.send

    async def slow_send(channel_id, view):
        await asyncio.sleep(0)
        return await real_send(channel_id, view)

    publisher.send = slow_send
    sync = DisplaySynchronizer(config_store, entry_store, publisher)

    async def both():
        return await asyncio.gather(sync.sync(), sync.sync())

    first, second = asyncio.run(both())
    assert publisher.sent == 1
    assert first == second == "summary-1"
    assert publisher.edited == 1
    assert config_store.config.display_message_id == "summary-1"
