"""
TruFraudBot - Discord Utilities
Helper functions for Discord interactions and message splitting.
"""

import re
from typing import List, Optional

import discord

from constants import MAX_REPLY_LENGTH

# <@123> and the legacy nickname form <@!123>
MENTION_PATTERN = re.compile(r'<@!?\d+>')


# --- Inbound Helpers ---

def is_private_channel(message: discord.Message) -> bool:
    """True for 1:1 DMs."""
    return isinstance(message.channel, discord.DMChannel)


def mentions_user(message: discord.Message, user: Optional[discord.abc.User]) -> bool:
    """Check whether the message mentions the given user."""
    if user is None or not message.mentions:
        return False
    return any(str(u.id) == str(user.id) for u in message.mentions)


def get_reply_content(message: discord.Message) -> Optional[str]:
    """Text of the message being replied to, if it is resolved."""
    if not message.reference or not message.reference.resolved:
        return None

    replied = message.reference.resolved
    # Deleted messages resolve to DeletedReferencedMessage without content
    content = getattr(replied, "content", None)
    return content.strip() if content else None


def strip_mentions(text: str) -> str:
    """Remove user mention tokens and trim."""
    return MENTION_PATTERN.sub('', text).strip()


# --- Message Splitting ---

def split_message(content: str, max_length: int = MAX_REPLY_LENGTH) -> List[str]:
    """Split a long message into Discord-sized chunks at whitespace.

    Takes up to max_length characters at a time and backs off to the last
    whitespace in the window so words stay whole. A window with no
    whitespace is hard-cut at max_length.
    """
    if max_length < 1:
        raise ValueError(f"max_length must be positive, got {max_length}")

    text = content.strip()
    chunks = []
    start = 0
    length = len(text)

    while start < length:
        # a split point may sit on a run of whitespace
        while start < length and text[start].isspace():
            start += 1
        end = min(start + max_length, length)
        if end < length:
            window = text[start:end]
            cut = next((i for i in range(len(window) - 1, -1, -1) if window[i].isspace()), -1)
            if cut > 0:
                end = start + cut + 1
        chunk = text[start:end].rstrip()
        if chunk:
            chunks.append(chunk)
        start = end

    return chunks
