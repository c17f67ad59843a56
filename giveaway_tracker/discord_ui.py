from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

import discord

from .display import SummaryView
from .errors import CorrelationMismatch
from .imports import PENDING_TTL_SECONDS, AmountSubmitted, ImportCorrelator, SourceChosen
from .models import SOURCES

log = logging.getLogger("giveaway-tracker.ui")

IMPORT_BUTTON_ID = "import_manual"

OnCommit = Callable[[], Awaitable[None]]


def summary_embed(view: SummaryView) -> discord.Embed:
    embed = discord.Embed(title=view.title, timestamp=datetime.now(timezone.utc))
    for f in view.fields:
        embed.add_field(name=f.name, value=f.value, inline=f.inline)
    embed.set_footer(text=view.footer)
    return embed


async def _report_error(interaction: discord.Interaction, error: Exception):
    log.error("Interaction error", exc_info=error)
    try:
        if interaction.response.is_done():
            await interaction.followup.send("Error handling interaction", ephemeral=True)
        else:
            await interaction.response.send_message("Error handling interaction", ephemeral=True)
    except discord.HTTPException as e:
        log.warning("Could not report interaction error: %s", e)


class ImportView(discord.ui.View):
    """Persistent "Import" button attached to the summary message."""

    def __init__(self, correlator: ImportCorrelator, on_commit: OnCommit):
        super().__init__(timeout=None)
        self.correlator = correlator
        self.on_commit = on_commit

    @discord.ui.button(label="Import", style=discord.ButtonStyle.success, custom_id=IMPORT_BUTTON_ID)
    async def import_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.send_modal(ImportModal(self.correlator, self.on_commit))

    async def on_error(self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item) -> None:
        await _report_error(interaction, error)


class ImportModal(discord.ui.Modal, title="Import manual giveaway"):
    usd_amount = discord.ui.TextInput(label="USD amount", placeholder="e.g. 50", required=True, max_length=20)
    coin = discord.ui.TextInput(label="Coin (optional)", placeholder="e.g. TRX", required=False, max_length=10)

    def __init__(self, correlator: ImportCorrelator, on_commit: OnCommit):
        super().__init__()
        self.correlator = correlator
        self.on_commit = on_commit

    async def on_submit(self, interaction: discord.Interaction) -> None:
        user_id = str(interaction.user.id)
        pending = self.correlator.submit_amount(
            AmountSubmitted(user_id=user_id, usd_text=self.usd_amount.value, coin_text=self.coin.value)
        )
        await interaction.response.send_message(
            f"Importing ${pending.usd_amount:.2f} (coin {pending.coin}). Choose source:",
            view=SourceChoiceView(self.correlator, self.on_commit, owner_id=user_id),
            ephemeral=True,
        )

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        await _report_error(interaction, error)


class SourceButton(discord.ui.Button):
    def __init__(self, source: str):
        style = discord.ButtonStyle.secondary if source == "Others" else discord.ButtonStyle.primary
        super().__init__(label=source, style=style)
        self.source = source

    async def callback(self, interaction: discord.Interaction):
        view: SourceChoiceView = self.view
        try:
            entry = view.correlator.choose_source(
                SourceChosen(user_id=str(interaction.user.id), source=self.source),
                owner_id=view.owner_id,
            )
        except CorrelationMismatch:
            await interaction.response.send_message(
                "No recent import found or you are not the owner of the import.", ephemeral=True
            )
            return
        view.stop()
        await interaction.response.edit_message(
            content=f"Imported ${entry.usd_amount:.2f} as {entry.source}.", view=None
        )
        await view.on_commit()


class SourceChoiceView(discord.ui.View):
    def __init__(self, correlator: ImportCorrelator, on_commit: OnCommit, owner_id: str):
        super().__init__(timeout=PENDING_TTL_SECONDS)
        self.correlator = correlator
        self.on_commit = on_commit
        self.owner_id = owner_id
        for source in SOURCES:
            self.add_item(SourceButton(source))

    async def on_error(self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item) -> None:
        await _report_error(interaction, error)
