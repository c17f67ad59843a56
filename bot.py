#!/usr/bin/env python3
"""
Discord bot that watches configured channels for giveaway announcements such
as "100TRX/50$ @winner", records each one once, and keeps a single summary
message (totals, prize distribution, leaderboard) up to date.

Configuration via environment variables (set in .env or your environment):
  - DISCORD_TOKEN   (required) bot token
  - OWNER_ID        (optional) user id allowed to change settings via the admin API
  - DATA_DIR        (optional) default: data  (config.json + tracked.json)
  - ADMIN_HOST      (optional) default: 127.0.0.1
  - PORT            (optional) default: 3000
  - ADMIN_API       (optional) set to 0 to disable the admin API

Tracked channels, the display channel and the update interval are edited
through the admin API (see giveaway_tracker/admin.py).
"""
from __future__ import annotations

import asyncio
import logging
from typing import List

import discord
import uvicorn
from discord.ext import tasks

from giveaway_tracker.admin import create_admin_app
from giveaway_tracker.config import load_settings
from giveaway_tracker.discord_ui import ImportView, summary_embed
from giveaway_tracker.display import SummaryView
from giveaway_tracker.errors import TransportUnavailable
from giveaway_tracker.models import IncomingMessage
from giveaway_tracker.service import Tracker

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("giveaway-tracker")


def to_incoming(msg: discord.Message) -> IncomingMessage:
    return IncomingMessage(
        channel_id=str(msg.channel.id),
        message_id=str(msg.id),
        content=msg.content or "",
        created_at=int(msg.created_at.timestamp() * 1000),
        author_is_bot=bool(msg.author.bot),
        has_embeds=bool(msg.embeds),
        mention_ids=[str(u.id) for u in msg.mentions],
    )


class TrackerBot(discord.Client):
    def __init__(self, *, intents: discord.Intents, cfg: dict):
        super().__init__(intents=intents)
        self.cfg = cfg
        self.tracker = Tracker.from_data_dir(cfg["data_dir"], owner_id=cfg.get("owner_id"))
        self.tracker.attach(DiscordTransport(self), DiscordPublisher(self))
        self._admin_server: uvicorn.Server | None = None
        self._admin_task: asyncio.Task | None = None

    def import_view(self) -> ImportView:
        return ImportView(self.tracker.imports, self.tracker.refresh_display)

    async def setup_hook(self):
        # keep the Import button on an existing summary message working after restarts
        self.add_view(self.import_view())

        minutes = self.tracker.config.config.update_interval_minutes
        self._refresh_loop.change_interval(minutes=minutes)
        self._refresh_loop.start()
        log.info("Started refresh loop (every %d minute(s))", minutes)

        if self.cfg.get("admin_enabled"):
            app = create_admin_app(self.tracker, on_config_change=self._apply_interval)
            config = uvicorn.Config(app, host=self.cfg["admin_host"], port=self.cfg["port"], log_level="info")
            self._admin_server = uvicorn.Server(config)
            self._admin_task = asyncio.create_task(self._admin_server.serve())
            log.info("Admin API available at http://%s:%s", self.cfg["admin_host"], self.cfg["port"])

    def _apply_interval(self):
        minutes = self.tracker.config.config.update_interval_minutes
        if self._refresh_loop.minutes != minutes:
            self._refresh_loop.change_interval(minutes=minutes)
            log.info("Refresh interval changed to %d minute(s)", minutes)

    async def on_ready(self):
        log.info("Logged in as %s (id=%s)", self.user, self.user and self.user.id)
        tracked = self.tracker.config.config.tracked_channel_ids
        if tracked:
            log.info("Tracked channels (%d): %s", len(tracked), tracked)
        else:
            log.warning("No tracked channels configured. Use the admin API to add some.")

    @tasks.loop(minutes=30)
    async def _refresh_loop(self):
        # each iteration finishes before the next one is scheduled
        try:
            await self.tracker.run_cycle()
        except Exception:
            log.exception("Periodic refresh failed")

    @_refresh_loop.before_loop
    async def _before_refresh(self):
        await self.wait_until_ready()

    async def on_message(self, message: discord.Message):
        if message.author.bot:
            return
        if not self.tracker.config.is_tracked(message.channel.id):
            return
        self.tracker.ingestor.handle_live(to_incoming(message))

    async def close(self):
        if self._admin_server is not None:
            self._admin_server.should_exit = True
        if self._admin_task is not None:
            try:
                await asyncio.wait_for(self._admin_task, timeout=5)
            except asyncio.TimeoutError:
                log.warning("Admin API did not stop in time")
        await super().close()


class DiscordTransport:
    """Reads channel history for the rescan."""

    def __init__(self, client: discord.Client):
        self.client = client

    async def _channel(self, channel_id: str):
        try:
            cid = int(channel_id)
        except ValueError:
            raise TransportUnavailable(channel_id, "not a channel id") from None
        ch = self.client.get_channel(cid)
        if ch is None:
            try:
                ch = await self.client.fetch_channel(cid)
            except (discord.HTTPException, discord.InvalidData) as e:
                raise TransportUnavailable(channel_id, str(e)) from e
        if not isinstance(ch, discord.abc.Messageable):
            raise TransportUnavailable(channel_id, "not a text channel")
        return ch

    async def fetch_history(self, channel_id: str, limit: int) -> List[IncomingMessage]:
        ch = await self._channel(channel_id)
        try:
            return [to_incoming(m) async for m in ch.history(limit=limit)]
        except (discord.Forbidden, discord.HTTPException) as e:
            raise TransportUnavailable(channel_id, str(e)) from e


class DiscordPublisher(DiscordTransport):
    """Posts and edits the summary message."""

    async def edit(self, channel_id: str, message_id: str, view: SummaryView) -> bool:
        ch = await self._channel(channel_id)
        try:
            msg = await ch.fetch_message(int(message_id))
            await msg.edit(embed=summary_embed(view), view=self.client.import_view())
            return True
        except (ValueError, discord.HTTPException) as e:
            log.debug("Could not edit summary message %s: %s", message_id, e)
            return False

    async def send(self, channel_id: str, view: SummaryView) -> str:
        ch = await self._channel(channel_id)
        try:
            sent = await ch.send(embed=summary_embed(view), view=self.client.import_view())
        except (discord.Forbidden, discord.HTTPException) as e:
            raise TransportUnavailable(channel_id, str(e)) from e
        return str(sent.id)


def main() -> int:
    cfg = load_settings()
    token = cfg.get("token")
    if not token:
        log.error("DISCORD_TOKEN not set. Create a .env file and set DISCORD_TOKEN.")
        return 1

    intents = discord.Intents.default()
    # message content is needed to read giveaway announcements
    intents.message_content = True

    bot = TrackerBot(intents=intents, cfg=cfg)
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        log.info("Shutting down…")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
