from __future__ import annotations

import logging
from typing import List, Protocol

from .config import ConfigStore
from .errors import TransportUnavailable
from .extractor import iter_giveaways
from .models import DEFAULT_SOURCE, GiveawayEntry, IncomingMessage
from .store import EntryStore

log = logging.getLogger("giveaway-tracker.ingest")

HISTORY_LIMIT = 200


class ChatTransport(Protocol):
    async def fetch_history(self, channel_id: str, limit: int) -> List[IncomingMessage]:
        """Most recent ``limit`` messages of a text channel, newest first.

        Raises TransportUnavailable when the channel is missing or unreadable.
        """
        ...


def should_parse(message: IncomingMessage) -> bool:
    # bot posts and embeds are already-structured content
    if message.author_is_bot:
        return False
    if message.has_embeds:
        return False
    return bool(message.content)


def entries_for(message: IncomingMessage) -> list[GiveawayEntry]:
    if not should_parse(message):
        return []
    winner = message.mention_ids[0] if message.mention_ids else None
    return [
        GiveawayEntry(
            channel_id=str(message.channel_id),
            message_id=str(message.message_id),
            timestamp=message.created_at,
            coin=found.coin,
            coin_amount=found.coin_amount,
            usd_amount=found.usd_amount,
            winner_id=winner,
            source=DEFAULT_SOURCE,
        )
        for found in iter_giveaways(message.content)
    ]


class Ingestor:
    """Feeds chat messages into the entry store.

    Both the live path and the bulk rescan go through ``ingest_message`` so a
    message is recorded at most once whichever path sees it first.
    """

    def __init__(
        self,
        store: EntryStore,
        config: ConfigStore,
        transport: ChatTransport | None = None,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.store = store
        self.config = config
        self.transport = transport
        self.history_limit = history_limit

    def ingest_message(self, message: IncomingMessage) -> list[GiveawayEntry]:
        if not should_parse(message):
            return []
        # no await between this check and the appends below
        if self.store.contains_message(message.channel_id, message.message_id):
            return []
        return [self.store.append(e) for e in entries_for(message)]

    def handle_live(self, message: IncomingMessage) -> list[GiveawayEntry]:
        if not self.config.is_tracked(message.channel_id):
            return []
        added = self.ingest_message(message)
        if added:
            log.info(
                "Recorded %d giveaway(s) from message %s in channel %s",
                len(added), message.message_id, message.channel_id,
            )
        return added

    async def rescan_channel(self, channel_id: str) -> int:
        if self.transport is None:
            raise RuntimeError("no chat transport attached")
        messages = await self.transport.fetch_history(str(channel_id), self.history_limit)
        added = 0
        for msg in messages:
            added += len(self.ingest_message(msg))
        if added:
            log.info("Rescan of channel %s added %d entr%s", channel_id, added, "y" if added == 1 else "ies")
        return added

    async def rescan_all(self) -> int:
        channel_ids = list(self.config.config.tracked_channel_ids)
        log.info("Rescanning %d tracked channel(s)", len(channel_ids))
        total = 0
        for ch_id in channel_ids:
            try:
                total += await self.rescan_channel(ch_id)
            except TransportUnavailable as e:
                log.warning("Skipping channel %s: %s", ch_id, e)
            except Exception:
                log.exception("Error rescanning channel %s", ch_id)
        return total
