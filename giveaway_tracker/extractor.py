"""Pull "<amount><COIN>/<usd>$" giveaway announcements out of message text.

Examples that match: ``100TRX/50$``, ``5 btc / 200$``, ``0.25ETH/12.5$``.
"""
from __future__ import annotations

import re as _re
from typing import Iterator, NamedTuple

GIVEAWAY_PATTERN = _re.compile(
    r"([0-9]{1,6}(?:\.[0-9]{1,6})?)"   # coin amount
    r"\s*([A-Za-z]{1,5})"         # coin symbol
    r"\s*/\s*"
    r"([0-9]{1,6}(?:\.[0-9]{1,2})?)\$",  # usd amount
)


class ExtractedGiveaway(NamedTuple):
    coin_amount: float
    coin: str
    usd_amount: float


def iter_giveaways(text: str | None) -> Iterator[ExtractedGiveaway]:
    if not text:
        return
    for m in GIVEAWAY_PATTERN.finditer(text):
        yield ExtractedGiveaway(float(m.group(1)), m.group(2).upper(), float(m.group(3)))


def parse_giveaways(text: str | None) -> list[ExtractedGiveaway]:
    return list(iter_giveaways(text))
