"""Giveaway tracking engine: extraction, dedup, aggregation and manual imports."""

__version__ = "1.0.0"
