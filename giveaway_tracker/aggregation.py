from __future__ import annotations

from typing import Iterable, Mapping

from .models import DEFAULT_SOURCE, SOURCES, GiveawayEntry, LeaderboardRow, WinnerStats, now_millis

DAY_MS = 24 * 60 * 60 * 1000

# Standard trailing windows, in days.
BUCKET_WINDOWS = {"weekly": 7, "biweekly": 14, "monthly": 30}


def custom_bucket_name(days: int) -> str:
    return f"custom_{days}d"


def _custom_windows(buckets: Mapping | None) -> list[int]:
    if not buckets:
        return []
    days: list[int] = []
    for raw in buckets.get("custom") or []:
        try:
            d = int(raw)
        except (TypeError, ValueError):
            continue
        if d > 0 and d not in days:
            days.append(d)
    return days


def compute_bucket_totals(
    entries: Iterable[GiveawayEntry],
    now: int | None = None,
    buckets: Mapping | None = None,
) -> dict[str, float]:
    """USD sums per trailing window. An entry aged exactly the window length still counts."""
    if now is None:
        now = now_millis()
    windows = dict(BUCKET_WINDOWS)
    for d in _custom_windows(buckets):
        windows[custom_bucket_name(d)] = d

    totals = {"all": 0.0}
    totals.update({name: 0.0 for name in windows})
    for e in entries:
        usd = e.usd_amount or 0.0
        totals["all"] += usd
        age = now - e.timestamp
        for name, days in windows.items():
            if age <= days * DAY_MS:
                totals[name] += usd
    return totals


def empty_distribution() -> dict[str, float]:
    return {label: 0.0 for label in SOURCES}


def apply_entry(
    leaderboard: dict[str, WinnerStats],
    distribution: dict[str, float],
    entry: GiveawayEntry,
) -> None:
    usd = entry.usd_amount or 0.0
    if entry.winner_id:
        stats = leaderboard.setdefault(entry.winner_id, WinnerStats())
        stats.wins += 1
        stats.total_usd += usd
    src = entry.source or DEFAULT_SOURCE
    distribution[src] = distribution.get(src, 0.0) + usd


def recompute_summary(entries: Iterable[GiveawayEntry]) -> tuple[dict[str, WinnerStats], dict[str, float]]:
    leaderboard: dict[str, WinnerStats] = {}
    distribution = empty_distribution()
    for e in entries:
        apply_entry(leaderboard, distribution, e)
    return leaderboard, distribution


def rank_leaderboard(board: Mapping[str, WinnerStats], limit: int | None = None) -> list[LeaderboardRow]:
    rows = [LeaderboardRow(uid, s.wins, s.total_usd) for uid, s in board.items()]
    # sorted() is stable, so exact ties keep insertion order
    rows = sorted(rows, key=lambda r: (-r.total_usd, -r.wins))
    if limit is not None:
        rows = rows[:limit]
    return rows
