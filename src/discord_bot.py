"""
Scheduler Discord Bot

Hosts the message scheduling engine and its slash commands. Scheduled
messages are persisted to PostgreSQL when DATABASE_URL is set, so they
survive a restart.
"""

import asyncio
import os
from typing import Optional

import asyncpg
import discord
from discord.ext import commands
from dotenv import load_dotenv

import analytics
from analytics import track
from commands.schedule_commands import ScheduleCommands
from message_scheduler import (
    MemoryKeyValueStore,
    NotificationKind,
    PersistenceError,
    PostgresKeyValueStore,
    SchedulerConfig,
    SchedulingEngine,
)

load_dotenv()

import logging

# Discord message length limit
DISCORD_MAX_LENGTH = 2000

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("scheduler")


class SchedulerBot(commands.Bot):
    """Discord bot that delivers scheduled messages."""

    def __init__(self, config: Optional[SchedulerConfig] = None):
        intents = discord.Intents.default()
        intents.guilds = True

        super().__init__(command_prefix="!", intents=intents)

        self.config = config or SchedulerConfig.from_env()
        self.db_pool: Optional[asyncpg.Pool] = None
        self.engine: Optional[SchedulingEngine] = None

    async def setup_hook(self):
        """Called when the bot is starting up."""
        database_url = os.getenv("DATABASE_URL")
        logger.info(f"Setup: DATABASE_URL={'set' if database_url else 'missing'}")
        logger.info(
            f"Setup: timezone={self.config.timezone}, "
            f"notifications={self.config.show_notifications}, "
            f"send_buffer_ms={self.config.send_buffer_ms}"
        )

        store = await self._create_store(database_url)
        self.engine = SchedulingEngine(
            store,
            self.send_message,
            config=self.config,
            notify=self.notify,
        )

        # Commands go live only after the stored list has been loaded
        await self._recover()

        await self.add_cog(ScheduleCommands(self, self.engine, self.config))

        synced = await self.tree.sync()
        logger.info(f"Synced {len(synced)} application command(s)")

    async def _create_store(self, database_url: Optional[str]):
        """Use PostgreSQL when available, otherwise an in-memory store."""
        if database_url:
            try:
                self.db_pool = await asyncpg.create_pool(database_url)
                store = PostgresKeyValueStore(self.db_pool)
                await store.ensure_schema()
                analytics.configure(self.db_pool)
                logger.info("Scheduled messages will be persisted to PostgreSQL")
                return store
            except (asyncpg.PostgresError, OSError, PersistenceError) as e:
                logger.error(f"Failed to initialize database: {e}", exc_info=True)
                if self.db_pool is not None:
                    await self.db_pool.close()
                    self.db_pool = None

        logger.warning(
            "No database available, running in non-durable mode: "
            "scheduled messages will not survive a restart"
        )
        return MemoryKeyValueStore()

    async def on_ready(self):
        """Called when the bot has connected to Discord."""
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")

    async def _recover(self) -> None:
        """Restore messages persisted before the last restart."""
        report = await self.engine.recover()
        track(
            "recovery_completed",
            "system",
            properties={
                "rearmed": report.rearmed,
                "delivered": report.delivered,
                "dropped": report.dropped,
            },
        )

    async def notify(self, kind: NotificationKind, text: str) -> None:
        """Engine notification hook: log it and record an analytics event."""
        logger.info(f"[{kind.value}] {text}")
        track(f"message_{kind.value}", "scheduler", properties={"text": text})

    def _chunk_message(self, content: str) -> list[str]:
        """Split a message into chunks that fit Discord's 2000 char limit.

        Prefers paragraph, then line, then word boundaries.
        """
        chunks = []
        remaining = content

        while remaining:
            if len(remaining) <= DISCORD_MAX_LENGTH:
                chunks.append(remaining)
                break

            break_at = DISCORD_MAX_LENGTH
            for separator in ("\n\n", "\n", " "):
                idx = remaining.rfind(separator, 0, DISCORD_MAX_LENGTH)
                if idx > DISCORD_MAX_LENGTH // 2:
                    break_at = idx + len(separator)
                    break

            chunks.append(remaining[:break_at].rstrip())
            remaining = remaining[break_at:].lstrip()

        return chunks

    async def send_message(self, channel_id: str, content: str) -> None:
        """Deliver a scheduled message to its channel."""
        channel = self.get_channel(int(channel_id))
        if channel is None:
            channel = await self.fetch_channel(int(channel_id))

        for chunk in self._chunk_message(content):
            await channel.send(chunk)

    async def close(self):
        """Clean up resources on shutdown."""
        if self.engine is not None:
            if self.config.clear_on_shutdown:
                await self.engine.shutdown()
            else:
                await self.engine.close()
        await analytics.shutdown()
        if self.db_pool:
            await self.db_pool.close()
        await super().close()


async def main():
    """Run the scheduler bot."""
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        print("Error: DISCORD_BOT_TOKEN environment variable not set")
        print("Please set it in your .env file")
        return

    bot = SchedulerBot()
    await bot.start(token)


def run():
    """Console entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
