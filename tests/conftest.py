"""Pytest fixtures for giveaway tracker tests."""

from itertools import count

import pytest

from giveaway_tracker.config import ConfigStore
from giveaway_tracker.errors import TransportUnavailable
from giveaway_tracker.models import IncomingMessage, now_millis
from giveaway_tracker.persistence import JsonDocument
from giveaway_tracker.service import Tracker
from giveaway_tracker.store import EntryStore


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def config_store(data_dir) -> ConfigStore:
    return ConfigStore(JsonDocument(data_dir / "config.json"))


@pytest.fixture
def entry_store(data_dir) -> EntryStore:
    return EntryStore(JsonDocument(data_dir / "tracked.json"))


_ids = count(1000)


@pytest.fixture
def make_message():
    """Build an IncomingMessage with sensible defaults."""

    def _make(content, channel_id="1", message_id=None, **kwargs):
        return IncomingMessage(
            channel_id=str(channel_id),
            message_id=str(message_id if message_id is not None else next(_ids)),
            content=content,
            created_at=kwargs.pop("created_at", now_millis()),
            **kwargs,
        )

    return _make


class FakeTransport:
    """In-memory channel histories; unknown channels are unavailable."""

    def __init__(self):
        self.channels: dict[str, list[IncomingMessage]] = {}
        self.fetches: list[str] = []

    def add(self, message: IncomingMessage):
        self.channels.setdefault(message.channel_id, []).insert(0, message)

    async def fetch_history(self, channel_id, limit):
        self.fetches.append(channel_id)
        if channel_id not in self.channels:
            raise TransportUnavailable(channel_id, "unknown channel")
        return list(self.channels[channel_id][:limit])


class FakePublisher:
    def __init__(self):
        self.messages: dict[str, object] = {}
        self.sent = 0
        self.edited = 0
        self.unreachable = False

    async def edit(self, channel_id, message_id, view):
        if self.unreachable:
            raise TransportUnavailable(channel_id, "offline")
        if message_id not in self.messages:
            return False
        self.messages[message_id] = view
        self.edited += 1
        return True

    async def send(self, channel_id, view):
        if self.unreachable:
            raise TransportUnavailable(channel_id, "offline")
        self.sent += 1
        message_id = f"summary-{self.sent}"
        self.messages[message_id] = view
        return message_id


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def tracker(config_store, entry_store, transport, publisher) -> Tracker:
    t = Tracker(config_store, entry_store)
    t.attach(transport, publisher)
    return t
