"""Tests for the Discord adapters in bot.py."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from bot import DiscordPublisher, DiscordTransport, to_incoming
from giveaway_tracker.display import SummaryView
from giveaway_tracker.errors import TransportUnavailable


def _discord_message(content="100TRX/50$", bot=False, embeds=()):
    msg = MagicMock()
    msg.id = 555
    msg.channel.id = 111
    msg.content = content
    msg.created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    msg.author.bot = bot
    msg.embeds = list(embeds)
    msg.mentions = [MagicMock(id=9), MagicMock(id=10)]
    return msg


def test_to_incoming():
    incoming = to_incoming(_discord_message())
    assert incoming.channel_id == "111"
    assert incoming.message_id == "555"
    assert incoming.content == "100TRX/50$"
    assert incoming.created_at == 1704067200000
    assert incoming.author_is_bot is False
    assert incoming.has_embeds is False
    assert incoming.mention_ids == ["9", "10"]


def test_to_incoming_flags():
    incoming = to_incoming(_discord_message(content=None, bot=True, embeds=[object()]))
    assert incoming.content == ""
    assert incoming.author_is_bot is True
    assert incoming.has_embeds is True


def test_missing_channel_is_unavailable():
    client = MagicMock()
    client.get_channel.return_value = None
    client.fetch_channel = AsyncMock(
        side_effect=discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Channel")
    )
    with pytest.raises(TransportUnavailable):
        asyncio.run(DiscordTransport(client).fetch_history("123", 200))


def test_non_numeric_channel_is_unavailable():
    with pytest.raises(TransportUnavailable):
        asyncio.run(DiscordTransport(MagicMock()).fetch_history("general", 200))


def test_non_text_channel_is_unavailable():
    client = MagicMock()
    client.get_channel.return_value = MagicMock(spec=discord.CategoryChannel)
    with pytest.raises(TransportUnavailable):
        asyncio.run(DiscordTransport(client).fetch_history("123", 200))


def test_edit_with_malformed_message_id_reports_missing():
    client = MagicMock()
    channel = MagicMock(spec=discord.TextChannel)
    channel.fetch_message = AsyncMock()
    client.get_channel.return_value = channel
    view = SummaryView(title="t", footer="f")

    edited = asyncio.run(DiscordPublisher(client).edit("123", "not-a-number", view))
    assert edited is False
    channel.fetch_message.assert_not_awaited()
