from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, List, Optional

# Closed set of classification labels, in display order.
SOURCES = ("Tip", "Stream Giveaway", "Others")
DEFAULT_SOURCE = "Others"

MANUAL_IMPORT_CHANNEL = "manual_import"
NO_COIN = "N/A"


def now_millis() -> int:
    return int(time.time() * 1000)


def new_entry_id(now_ms: int | None = None) -> str:
    ms = now_millis() if now_ms is None else now_ms
    return f"{ms}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class GiveawayEntry:
    channel_id: str
    message_id: str
    timestamp: int
    coin: str
    coin_amount: float
    usd_amount: float
    winner_id: Optional[str] = None
    source: str = DEFAULT_SOURCE
    id: Optional[str] = None

    @property
    def dedup_key(self) -> tuple[str, str]:
        return (self.channel_id, self.message_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "channelId": self.channel_id,
            "messageId": self.message_id,
            "timestamp": self.timestamp,
            "coin": self.coin,
            "coinAmount": self.coin_amount,
            "usdAmount": self.usd_amount,
            "winnerId": self.winner_id,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GiveawayEntry":
        winner = data.get("winnerId")
        return cls(
            id=str(data["id"]) if data.get("id") is not None else None,
            channel_id=str(data["channelId"]),
            message_id=str(data["messageId"]),
            timestamp=int(data.get("timestamp") or 0),
            coin=str(data.get("coin") or NO_COIN),
            coin_amount=float(data.get("coinAmount") or 0),
            usd_amount=float(data.get("usdAmount") or 0),
            winner_id=str(winner) if winner is not None else None,
            source=str(data.get("source") or DEFAULT_SOURCE),
        )


@dataclass
class WinnerStats:
    wins: int = 0
    total_usd: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"wins": self.wins, "totalUsd": self.total_usd}


@dataclass(frozen=True)
class LeaderboardRow:
    user_id: str
    wins: int
    total_usd: float


@dataclass(frozen=True)
class IncomingMessage:
    """Transport-neutral view of a chat message."""

    channel_id: str
    message_id: str
    content: str
    created_at: int
    author_is_bot: bool = False
    has_embeds: bool = False
    mention_ids: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PendingImport:
    by_user: str
    usd_amount: float
    coin: str
    created_at: float
