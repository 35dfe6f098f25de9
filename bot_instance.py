"""
TruFraudBot - Bot Instance
Connects a Discord client to the message router.
"""

from contextlib import asynccontextmanager

import discord

from discord_utils import is_private_channel, mentions_user, get_reply_content
from router import InboundMessage, MessageRouter, Responder
import logger as log


class DiscordResponder(Responder):
    """Replies and follow-ups for one Discord message."""

    def __init__(self, message: discord.Message):
        self.message = message

    async def reply(self, text: str):
        await self.message.reply(text)

    async def send(self, text: str):
        await self.message.channel.send(text)

    @asynccontextmanager
    async def typing(self):
        async with self.message.channel.typing():
            yield


def to_inbound(message: discord.Message, bot_user) -> InboundMessage:
    """Convert a Discord message into the router's event shape."""
    return InboundMessage(
        author_id=str(message.author.id),
        author_is_bot=bool(message.author.bot),
        channel_id=str(message.channel.id),
        content=message.content or "",
        is_private=is_private_channel(message),
        mentions_bot=mentions_user(message, bot_user),
        replied_to=get_reply_content(message),
    )


class BotInstance:
    """Encapsulates the Discord client and its router."""

    def __init__(self, token: str, router: MessageRouter):
        self.token = token
        self.router = router

        intents = discord.Intents.default()
        intents.guilds = True
        intents.guild_messages = True
        intents.dm_messages = True
        intents.message_content = True

        self.client = discord.Client(intents=intents)
        self._setup_events()

    def _setup_events(self):
        """Register event handlers."""

        @self.client.event
        async def on_ready():
            log.online(f"TruFraudBot connected as {self.client.user}")

        @self.client.event
        async def on_message(message: discord.Message):
            if message.author == self.client.user:
                return
            await self.router.handle(to_inbound(message, self.client.user), DiscordResponder(message))

    async def start(self):
        """Start the bot."""
        await self.client.start(self.token)

    async def close(self):
        """Close the bot connection."""
        await self.client.close()
