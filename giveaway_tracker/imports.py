"""Two-step manual import: amount/coin first, source label second.

Pending imports are keyed by the submitting user so imports from different
users never overwrite each other. A user who submits step one twice simply
replaces their own pending record.
"""
from __future__ import annotations

import logging
import math
import re as _re
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Union

from .errors import CorrelationMismatch, NoPendingImport
from .models import MANUAL_IMPORT_CHANNEL, NO_COIN, SOURCES, GiveawayEntry, PendingImport, now_millis
from .store import EntryStore

log = logging.getLogger("giveaway-tracker.imports")

PENDING_TTL_SECONDS = 15 * 60

_LEADING_NUMBER = _re.compile(r"(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


@dataclass(frozen=True)
class AmountSubmitted:
    user_id: str
    usd_text: str
    coin_text: str | None = None


@dataclass(frozen=True)
class SourceChosen:
    user_id: str
    source: str


ImportStep = Union[AmountSubmitted, SourceChosen]


def parse_usd(text: str | None) -> float:
    """Leading decimal number of ``text`` (exponent allowed); 0 when there is none or it overflows."""
    m = _LEADING_NUMBER.match((text or "").strip())
    if not m:
        return 0.0
    value = float(m.group(0))
    return value if math.isfinite(value) else 0.0


def normalize_coin(text: str | None) -> str:
    coin = (text or "").strip()
    return coin.upper() if coin else NO_COIN


class ImportCorrelator:
    def __init__(
        self,
        store: EntryStore,
        ttl_seconds: float = PENDING_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._pending: dict[str, PendingImport] = {}

    def _prune(self):
        now = self.clock()
        for uid in [u for u, p in self._pending.items() if now - p.created_at > self.ttl_seconds]:
            del self._pending[uid]

    def pending_for(self, user_id) -> PendingImport | None:
        self._prune()
        return self._pending.get(str(user_id))

    def submit_amount(self, step: AmountSubmitted) -> PendingImport:
        self._prune()
        pending = PendingImport(
            by_user=str(step.user_id),
            usd_amount=parse_usd(step.usd_text),
            coin=normalize_coin(step.coin_text),
            created_at=self.clock(),
        )
        self._pending[pending.by_user] = pending
        return pending

    def choose_source(self, step: SourceChosen, owner_id: str | None = None) -> GiveawayEntry:
        """Commit the pending import for ``step.user_id``.

        ``owner_id`` is the user the source prompt was issued to; a press by
        anyone else is rejected without touching any pending record.
        """
        if step.source not in SOURCES:
            raise ValueError(f"unknown source label {step.source!r}")
        user_id = str(step.user_id)
        if owner_id is not None and str(owner_id) != user_id:
            log.info("Rejected source choice from %s for import owned by %s", user_id, owner_id)
            raise CorrelationMismatch("you are not the owner of this import")
        pending = self.pending_for(user_id)
        if pending is None:
            raise NoPendingImport("no recent import found")

        ts = now_millis()
        entry = self.store.append(
            GiveawayEntry(
                channel_id=MANUAL_IMPORT_CHANNEL,
                message_id=f"import-{ts}-{uuid.uuid4().hex[:8]}",
                timestamp=ts,
                coin=pending.coin,
                coin_amount=0.0,
                usd_amount=pending.usd_amount,
                winner_id=user_id,
                source=step.source,
            )
        )
        del self._pending[user_id]
        log.info("Imported $%.2f (%s) as %s for %s", pending.usd_amount, pending.coin, step.source, user_id)
        return entry

    def handle(self, step: ImportStep, owner_id: str | None = None):
        if isinstance(step, AmountSubmitted):
            return self.submit_amount(step)
        if isinstance(step, SourceChosen):
            return self.choose_source(step, owner_id=owner_id)
        raise TypeError(f"unsupported import step {type(step).__name__}")
