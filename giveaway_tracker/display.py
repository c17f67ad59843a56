from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Protocol

from .aggregation import BUCKET_WINDOWS, compute_bucket_totals, custom_bucket_name, rank_leaderboard
from .config import ConfigStore, TrackingConfig
from .errors import TransportUnavailable
from .models import SOURCES, now_millis
from .store import EntryStore, StoreSnapshot

log = logging.getLogger("giveaway-tracker.display")

TITLE = "Giveaway Data Track - Summary"
LEADERBOARD_SIZE = 10


@dataclass(frozen=True)
class SummaryField:
    name: str
    value: str
    inline: bool = False


@dataclass
class SummaryView:
    title: str
    footer: str
    fields: List[SummaryField] = field(default_factory=list)


class SummaryPublisher(Protocol):
    async def edit(self, channel_id: str, message_id: str, view: SummaryView) -> bool:
        """Edit an existing summary message; False when it no longer exists."""
        ...

    async def send(self, channel_id: str, view: SummaryView) -> str:
        """Post a new summary message and return its id."""
        ...


def _usd(value: float) -> str:
    return f"${value:.2f}"


def build_summary(snapshot: StoreSnapshot, config: TrackingConfig, now: int | None = None) -> SummaryView:
    if now is None:
        now = now_millis()
    buckets = config.buckets or {}
    totals = compute_bucket_totals(snapshot.entries, now, buckets)

    total_lines = [f"All time: {_usd(totals['all'])}"]
    for name in BUCKET_WINDOWS:
        if buckets.get(name):
            total_lines.append(f"{name.capitalize()}: {_usd(totals[name])}")
    for days in buckets.get("custom") or []:
        key = custom_bucket_name(int(days))
        if key in totals:
            total_lines.append(f"Last {int(days)} days: {_usd(totals[key])}")

    dist_lines = [f"{label}: {_usd(snapshot.distribution.get(label, 0.0))}" for label in SOURCES]

    rows = rank_leaderboard(snapshot.leaderboard, limit=LEADERBOARD_SIZE)
    if rows:
        lb_text = "\n".join(
            f"#{i} <@{row.user_id}> - {_usd(row.total_usd)} ({row.wins} win{'' if row.wins == 1 else 's'})"
            for i, row in enumerate(rows, start=1)
        )
    else:
        lb_text = "No winners tracked yet"

    return SummaryView(
        title=TITLE,
        footer=f"Updated every {config.update_interval_minutes} minutes",
        fields=[
            SummaryField("Totals (USD)", "\n".join(total_lines), inline=True),
            SummaryField("Prize Distribution", "\n".join(dist_lines), inline=True),
            SummaryField("Leaderboard (top)", lb_text, inline=False),
        ],
    )


class DisplaySynchronizer:
    """Keeps exactly one summary message up to date in the display channel."""

    def __init__(self, config: ConfigStore, store: EntryStore, publisher: SummaryPublisher):
        self.config = config
        self.store = store
        self.publisher = publisher
        self._lock = asyncio.Lock()

    async def sync(self, now: int | None = None) -> str | None:
        # one upsert at a time, otherwise two callers can both post a new message
        async with self._lock:
            return await self._sync(now)

    async def _sync(self, now: int | None) -> str | None:
        cfg = self.config.config
        if not cfg.display_channel_id:
            return None
        channel_id = cfg.display_channel_id
        view = build_summary(self.store.snapshot(), cfg, now)
        try:
            if cfg.display_message_id:
                if await self.publisher.edit(channel_id, cfg.display_message_id, view):
                    return cfg.display_message_id
                log.info("Summary message %s is gone; posting a new one", cfg.display_message_id)
            message_id = await self.publisher.send(channel_id, view)
        except TransportUnavailable as e:
            log.warning("Failed to update display message: %s", e)
            return None
        self.config.set_display_message(message_id)
        log.info("Posted summary message %s in channel %s", message_id, channel_id)
        return str(message_id)
