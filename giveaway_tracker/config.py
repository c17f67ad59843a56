from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from dotenv import load_dotenv

from .errors import AuthorizationDenied
from .persistence import JsonDocument

log = logging.getLogger("giveaway-tracker.config")


def load_settings() -> dict:
    load_dotenv()
    cfg = {
        "token": os.getenv("DISCORD_TOKEN", ""),
        "owner_id": os.getenv("OWNER_ID") or None,
        "data_dir": os.getenv("DATA_DIR", "data"),
        "admin_enabled": os.getenv("ADMIN_API", "1") not in ("0", "false", "no"),
        "admin_host": os.getenv("ADMIN_HOST", "127.0.0.1"),
        "port": int(os.getenv("PORT", "3000")),
    }
    return cfg


def default_buckets() -> dict:
    return {"weekly": True, "biweekly": False, "monthly": False, "custom": []}


def _ids(values: Iterable) -> List[str]:
    out: List[str] = []
    for v in values:
        s = str(v).strip()
        if s and s not in out:
            out.append(s)
    return out


def _interval(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("updateIntervalMinutes must be a positive integer")
    try:
        minutes = int(value)
    except (TypeError, ValueError):
        raise ValueError("updateIntervalMinutes must be a positive integer") from None
    if minutes != value and str(minutes) != str(value).strip():
        raise ValueError("updateIntervalMinutes must be a positive integer")
    if minutes <= 0:
        raise ValueError("updateIntervalMinutes must be a positive integer")
    return minutes


def _buckets(value: Any) -> dict:
    if not isinstance(value, dict):
        raise ValueError("buckets must be an object")
    merged = default_buckets()
    for key in ("weekly", "biweekly", "monthly"):
        if key in value:
            merged[key] = bool(value[key])
    custom = value.get("custom") or []
    if not isinstance(custom, list):
        raise ValueError("buckets.custom must be a list of day counts")
    days: List[int] = []
    for d in custom:
        try:
            n = int(d)
        except (TypeError, ValueError):
            raise ValueError("custom bucket windows must be whole day counts") from None
        if n <= 0:
            raise ValueError("custom bucket windows must be positive")
        days.append(n)
    merged["custom"] = days
    return merged


@dataclass
class TrackingConfig:
    tracked_channel_ids: List[str] = field(default_factory=list)
    display_channel_id: Optional[str] = None
    display_message_id: Optional[str] = None
    update_interval_minutes: int = 30
    buckets: dict = field(default_factory=default_buckets)
    owner_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "trackedChannelIds": list(self.tracked_channel_ids),
            "displayChannelId": self.display_channel_id,
            "displayMessageId": self.display_message_id,
            "updateIntervalMinutes": self.update_interval_minutes,
            "buckets": {**self.buckets, "custom": list(self.buckets.get("custom") or [])},
            "ownerId": self.owner_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrackingConfig":
        cfg = cls()
        if isinstance(data.get("trackedChannelIds"), list):
            cfg.tracked_channel_ids = _ids(data["trackedChannelIds"])
        if data.get("displayChannelId"):
            cfg.display_channel_id = str(data["displayChannelId"])
        if data.get("displayMessageId"):
            cfg.display_message_id = str(data["displayMessageId"])
        if data.get("updateIntervalMinutes") is not None:
            try:
                cfg.update_interval_minutes = _interval(data["updateIntervalMinutes"])
            except ValueError as e:
                log.warning("Ignoring stored interval: %s", e)
        if data.get("buckets") is not None:
            try:
                cfg.buckets = _buckets(data["buckets"])
            except (TypeError, ValueError) as e:
                log.warning("Ignoring stored buckets: %s", e)
        if data.get("ownerId"):
            cfg.owner_id = str(data["ownerId"])
        return cfg


class ConfigStore:
    """Owns the TrackingConfig and persists it after every mutation."""

    def __init__(self, document: JsonDocument, owner_id: str | None = None):
        self.document = document
        data = document.load({})
        self.config = TrackingConfig.from_dict(data if isinstance(data, dict) else {})
        if owner_id:
            self.config.owner_id = str(owner_id)
        self.persist()

    def persist(self) -> bool:
        return self.document.save(self.config.to_dict())

    def is_tracked(self, channel_id) -> bool:
        return str(channel_id) in self.config.tracked_channel_ids

    def check_owner(self, caller_id: str | None):
        owner = self.config.owner_id
        if not owner:
            return
        if not caller_id or str(caller_id) != owner:
            raise AuthorizationDenied("caller is not the configured owner")

    def update(
        self,
        *,
        tracked_channel_ids: Iterable | None = None,
        display_channel_id: str | None = None,
        update_interval_minutes: Any = None,
        buckets: dict | None = None,
    ) -> TrackingConfig:
        # validate everything before touching state
        new_interval = _interval(update_interval_minutes) if update_interval_minutes is not None else None
        new_buckets = _buckets(buckets) if buckets is not None else None

        cfg = self.config
        if tracked_channel_ids is not None:
            cfg.tracked_channel_ids = _ids(tracked_channel_ids)
        if display_channel_id:
            display_channel_id = str(display_channel_id)
            if display_channel_id != cfg.display_channel_id:
                cfg.display_channel_id = display_channel_id
                cfg.display_message_id = None
        if new_interval is not None:
            cfg.update_interval_minutes = new_interval
        if new_buckets is not None:
            cfg.buckets = new_buckets
        self.persist()
        log.info("Tracking config updated: %s", cfg.to_dict())
        return cfg

    def set_display_message(self, message_id) -> None:
        self.config.display_message_id = str(message_id) if message_id is not None else None
        self.persist()
