from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .config import ConfigStore
from .display import DisplaySynchronizer, SummaryPublisher
from .imports import ImportCorrelator
from .ingest import ChatTransport, Ingestor
from .persistence import JsonDocument
from .store import EntryStore

log = logging.getLogger("giveaway-tracker")

CONFIG_FILE = "config.json"
TRACKED_FILE = "tracked.json"


class Tracker:
    """Wires the stores, ingestion, imports and display together.

    Every component gets the same ``EntryStore`` and ``ConfigStore`` handles;
    nothing else holds mutable tracker state.
    """

    def __init__(self, config: ConfigStore, store: EntryStore):
        self.config = config
        self.store = store
        self.ingestor = Ingestor(store, config)
        self.imports = ImportCorrelator(store)
        self.display: DisplaySynchronizer | None = None
        self._cycle_lock = asyncio.Lock()

    @classmethod
    def from_data_dir(cls, data_dir, owner_id: str | None = None) -> "Tracker":
        root = Path(data_dir)
        config = ConfigStore(JsonDocument(root / CONFIG_FILE), owner_id=owner_id)
        store = EntryStore(JsonDocument(root / TRACKED_FILE))
        return cls(config, store)

    def attach(self, transport: ChatTransport, publisher: SummaryPublisher):
        self.ingestor.transport = transport
        self.display = DisplaySynchronizer(self.config, self.store, publisher)

    async def refresh_display(self):
        if self.display is not None:
            await self.display.sync()

    async def run_cycle(self) -> int:
        """Rescan every tracked channel, then refresh the summary message."""
        async with self._cycle_lock:
            added = await self.ingestor.rescan_all()
            await self.refresh_display()
        return added
