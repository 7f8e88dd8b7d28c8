# slashAI - Discord Bot and MCP Server
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
Scheduled Message Slash Commands

Discord slash commands for scheduling messages in the current channel.
"""

import logging
from datetime import datetime

import discord
from discord import app_commands
from discord.ext import commands

from analytics import track
from message_scheduler import (
    SUPPORTED_FORMATS_HELP,
    ScheduleIndexError,
    SchedulerConfig,
    SchedulingEngine,
    TimeParseError,
    parse_schedule_time,
)
from message_scheduler.formatting import format_clock, format_relative, format_schedule_list

logger = logging.getLogger("scheduler.commands.schedule")

NON_DURABLE_NOTE = (
    "Note: the bot is running in non-durable mode, so this message "
    "will not survive a restart."
)


class ScheduleCommands(commands.Cog):
    """
    Slash commands for scheduled messages.

    Commands:
    - /schedule - Schedule a message in this channel
    - /scheduled - List this channel's scheduled messages
    - /cancel-scheduled - Cancel one of them by its list number
    """

    def __init__(
        self,
        bot: commands.Bot,
        engine: SchedulingEngine,
        config: SchedulerConfig,
    ):
        self.bot = bot
        self.engine = engine
        self.config = config

    def _track_command(self, interaction: discord.Interaction, name: str, **properties) -> None:
        track(
            "command_used",
            "command",
            user_id=interaction.user.id,
            channel_id=interaction.channel_id,
            guild_id=interaction.guild.id if interaction.guild else None,
            properties={"command_name": name, **properties},
        )

    # =========================================================================
    # /schedule
    # =========================================================================

    @app_commands.command(name="schedule", description="Schedule a message to be sent later")
    @app_commands.describe(
        message="The message to send",
        time="When to send the message (e.g. '1h30m', '17h00', '+17h00+3d', '3:30pm')",
    )
    async def schedule_message(
        self,
        interaction: discord.Interaction,
        message: str,
        time: str,
    ):
        """Schedule a message in the current channel."""
        self._track_command(interaction, "schedule")

        if not message or not message.strip() or not time or not time.strip():
            await interaction.response.send_message(
                "Please provide both a message and a time.",
                ephemeral=True,
            )
            return

        now = datetime.now(self.config.tz)
        try:
            parsed = parse_schedule_time(time, now)
        except TimeParseError as e:
            logger.debug(f"Rejected time '{time}': {e} ({e.kind.value})")
            parsed = None

        if parsed is None or parsed.delay.total_seconds() <= 0:
            await interaction.response.send_message(
                f"Invalid or past time format. {SUPPORTED_FORMATS_HELP}",
                ephemeral=True,
            )
            return

        self.engine.schedule(str(interaction.channel_id), message, parsed.fire_at)

        reply = (
            f"Message scheduled to be sent {format_relative(parsed.fire_at, now)} "
            f"({format_clock(parsed.fire_at, self.config.tz)})."
        )
        if not self.engine.durable:
            reply += f" {NON_DURABLE_NOTE}"
        await interaction.response.send_message(reply, ephemeral=True)

    # =========================================================================
    # /scheduled
    # =========================================================================

    @app_commands.command(name="scheduled", description="List all scheduled messages")
    async def list_scheduled(self, interaction: discord.Interaction):
        """List the current channel's scheduled messages."""
        self._track_command(interaction, "scheduled")

        records = self.engine.list_scheduled(str(interaction.channel_id))
        if not records:
            await interaction.response.send_message(
                "No scheduled messages for this channel.",
                ephemeral=True,
            )
            return

        summary = format_schedule_list(
            records,
            datetime.now(self.config.tz),
            self.config.tz,
            preview_length=self.config.preview_length,
        )
        await interaction.response.send_message(summary, ephemeral=True)

    # =========================================================================
    # /cancel-scheduled
    # =========================================================================

    @app_commands.command(name="cancel-scheduled", description="Cancel a scheduled message")
    @app_commands.describe(
        index="The index of the message to cancel (use /scheduled to see indices)",
    )
    async def cancel_scheduled(self, interaction: discord.Interaction, index: int):
        """Cancel a scheduled message by its number in /scheduled."""
        self._track_command(interaction, "cancel-scheduled", index=index)

        if index <= 0:
            await interaction.response.send_message(
                "Please provide a valid message index (use /scheduled to see indices).",
                ephemeral=True,
            )
            return

        try:
            self.engine.cancel(str(interaction.channel_id), index)
        except ScheduleIndexError as e:
            await interaction.response.send_message(str(e), ephemeral=True)
            return

        await interaction.response.send_message(
            "Scheduled message cancelled.",
            ephemeral=True,
        )
