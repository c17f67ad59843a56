from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from .aggregation import apply_entry, compute_bucket_totals, empty_distribution, recompute_summary
from .models import GiveawayEntry, WinnerStats, new_entry_id
from .persistence import JsonDocument

log = logging.getLogger("giveaway-tracker.store")


@dataclass(frozen=True)
class StoreSnapshot:
    entries: tuple[GiveawayEntry, ...]
    leaderboard: dict[str, WinnerStats]
    distribution: dict[str, float]

    def to_dict(self, now: int | None = None) -> dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "summary": {
                "totalsByBucket": compute_bucket_totals(self.entries, now),
                "leaderboard": {uid: s.to_dict() for uid, s in self.leaderboard.items()},
                "distribution": dict(self.distribution),
            },
        }


class EntryStore:
    """Append-only giveaway log plus its running leaderboard and distribution.

    The store does not reject duplicates itself; callers check
    ``contains_message`` before appending.
    """

    def __init__(self, document: JsonDocument):
        self.document = document
        self._entries: list[GiveawayEntry] = []
        self._keys: set[tuple[str, str]] = set()
        self._leaderboard: dict[str, WinnerStats] = {}
        self._distribution: dict[str, float] = empty_distribution()
        self._load()

    def _load(self):
        data = self.document.load({"entries": [], "summary": {}})
        if not isinstance(data, dict):
            log.warning("Ignoring malformed tracked data in %s", self.document.path)
            return
        for raw in data.get("entries") or []:
            try:
                entry = GiveawayEntry.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                log.warning("Skipping unreadable entry %r: %s", raw, e)
                continue
            self._entries.append(entry)
            self._keys.add(entry.dedup_key)

        self._leaderboard, self._distribution = recompute_summary(self._entries)
        stored = data.get("summary") or {}
        if self._entries and not self._matches_stored(stored):
            log.warning("Stored summary disagrees with entry log; using recomputed totals")

    def _matches_stored(self, stored: dict) -> bool:
        try:
            board = {
                str(uid): (int(v["wins"]), float(v["totalUsd"]))
                for uid, v in (stored.get("leaderboard") or {}).items()
            }
            dist = {str(k): float(v) for k, v in (stored.get("distribution") or {}).items()}
        except (KeyError, TypeError, ValueError, AttributeError):
            return False
        ours = {uid: (s.wins, s.total_usd) for uid, s in self._leaderboard.items()}
        return board == ours and {k: v for k, v in dist.items() if v} == {
            k: v for k, v in self._distribution.items() if v
        }

    def __len__(self) -> int:
        return len(self._entries)

    def contains_message(self, channel_id, message_id) -> bool:
        return (str(channel_id), str(message_id)) in self._keys

    def append(self, entry: GiveawayEntry) -> GiveawayEntry:
        if not entry.id:
            entry = replace(entry, id=new_entry_id())
        self._entries.append(entry)
        self._keys.add(entry.dedup_key)
        apply_entry(self._leaderboard, self._distribution, entry)
        self.persist()
        return entry

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            entries=tuple(self._entries),
            leaderboard={uid: WinnerStats(s.wins, s.total_usd) for uid, s in self._leaderboard.items()},
            distribution=dict(self._distribution),
        )

    def persist(self) -> bool:
        return self.document.save(self.snapshot().to_dict())
