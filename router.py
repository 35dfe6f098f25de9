"""
TruFraudBot - Message Router
Decides whether and how to answer an inbound message, runs rule
commands, and relays chat turns through the per-channel sessions.

tb = normal chat, fb = chat that follows the stored rules plus rule management.
"""

import re
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from constants import (
    MAX_REPLY_LENGTH, ERROR_PREVIEW_LENGTH,
    RULES_PROMPT_TEMPLATE, REPLY_CONTEXT_TEMPLATE,
    CLEARED_MESSAGE, RULE_ADDED_MESSAGE, RULE_REMOVED_MESSAGE, RULE_UPDATED_MESSAGE,
    ADDRULE_USAGE, REMOVERULE_USAGE, EDITRULE_EXAMPLE_USAGE, EDITRULE_USAGE, NO_RULES_MESSAGE
)
from conversation import Mode, SessionRegistry
from discord_utils import split_message, strip_mentions
from rules import RuleStore
from prometheus_metrics import metrics_manager
import logger as log


# --- Transport Interface ---

@dataclass
class InboundMessage:
    """A chat message as seen by the router, independent of the platform."""
    author_id: str
    author_is_bot: bool
    channel_id: str
    content: str
    is_private: bool = False
    mentions_bot: bool = False
    replied_to: Optional[str] = None


class Responder(ABC):
    """Outbound side of one inbound message."""

    @abstractmethod
    async def reply(self, text: str):
        """Reply directly to the triggering message."""

    @abstractmethod
    async def send(self, text: str):
        """Send a follow-up message to the same channel."""

    @asynccontextmanager
    async def typing(self):
        """Show a typing indicator for the duration of the block."""
        yield


# --- Routing ---

@dataclass(frozen=True)
class Route:
    mode: Mode
    text: str


_LEADING_JUNK = re.compile(r'^[\s,]+')
_RULE_COMMAND = re.compile(r'^(addrule|removerule|editrule)(?:\s+(.*))?$', re.IGNORECASE | re.DOTALL)
_EDIT_ARGS = re.compile(r'^([0-9]+)\s+(.+)$', re.DOTALL)
_NUMBER = re.compile(r'^[0-9]+$')


def matches_prefix(content: str, prefix: str) -> bool:
    """Case-insensitive prefix match that must end at a word boundary.

    The prefix matches when it is the whole message or is followed by
    whitespace or a comma, so "tb" never matches "tbx hello".
    """
    if not prefix or not content.lower().startswith(prefix.lower()):
        return False
    if len(content) == len(prefix):
        return True
    following = content[len(prefix)]
    return following.isspace() or following == ','


def _after_prefix(content: str, prefix: str) -> str:
    return _LEADING_JUNK.sub('', content[len(prefix):]).strip()


def parse_route(
    content: str,
    mentions_bot: bool,
    rules_prefix: str,
    plain_prefix: str
) -> Optional[Route]:
    """Pick the mode and user input for a message, or None to ignore it.

    Without a prefix or a mention the message is ignored, in DMs too.
    When both prefixes match, plain chat wins.
    """
    content = content.strip()
    has_rules = matches_prefix(content, rules_prefix)
    has_plain = matches_prefix(content, plain_prefix)

    if has_rules and not has_plain:
        text = _after_prefix(content, rules_prefix)
        return Route(Mode.RULES, strip_mentions(text) if mentions_bot else text)

    if has_plain:
        text = _after_prefix(content, plain_prefix)
        return Route(Mode.PLAIN, strip_mentions(text) if mentions_bot else text)

    if mentions_bot:
        return Route(Mode.PLAIN, strip_mentions(content))

    return None


def apply_rules_prompt(message: str, rules_text: str) -> str:
    """Prepend the rules to a session's first message."""
    if not rules_text:
        return message
    return RULES_PROMPT_TEMPLATE.format(rules=rules_text, message=message)


def apply_reply_context(message: str, replied_to: Optional[str]) -> str:
    """Quote the message the user replied to."""
    replied_to = (replied_to or "").strip()
    if not replied_to:
        return message
    return REPLY_CONTEXT_TEMPLATE.format(replied=replied_to, message=message)


class MessageRouter:
    """Routes inbound messages to rule commands or conversation sessions."""

    def __init__(
        self,
        registry: SessionRegistry,
        rules: RuleStore,
        rules_prefix: str = "fb",
        plain_prefix: str = "tb",
        max_reply_length: int = MAX_REPLY_LENGTH
    ):
        self.registry = registry
        self.rules = rules
        self.rules_prefix = rules_prefix.strip()
        self.plain_prefix = plain_prefix.strip()
        self.max_reply_length = max_reply_length

    async def handle(self, event: InboundMessage, responder: Responder):
        """Handle one inbound message end to end.

        Failures are reported back as a short error reply and never
        escape, so one bad message cannot affect other channels.
        """
        if event.author_is_bot:
            return

        route = parse_route(event.content, event.mentions_bot, self.rules_prefix, self.plain_prefix)
        if route is None:
            return

        ctx = f"{route.mode.value}:{event.channel_id}"
        metrics_manager.record_message(route.mode.value, event.is_private)
        log.debug(f"Routed message from {event.author_id}", ctx)

        try:
            if not route.text:
                await responder.reply(self.help_text(route.mode))
            elif route.mode is Mode.RULES:
                await self._handle_rules_input(event, route.text, responder)
            else:
                await self._handle_plain_input(event, route.text, responder)
        except Exception as e:
            log.error(f"Error: {e}", ctx)
            metrics_manager.record_error(type(e).__name__)
            try:
                await responder.reply(f"Error: {str(e)[:ERROR_PREVIEW_LENGTH]}")
            except Exception as send_error:
                log.error(f"Failed to send error reply: {send_error}", ctx)

    # --- Plain Mode ---

    async def _handle_plain_input(self, event: InboundMessage, text: str, responder: Responder):
        command = text.strip().lower()
        if command in ("help", "commandlist"):
            metrics_manager.record_command(Mode.PLAIN.value, "help")
            await responder.reply(self.help_text(Mode.PLAIN))
            return
        if command == "clear":
            metrics_manager.record_command(Mode.PLAIN.value, "clear")
            self.registry.clear(event.channel_id, Mode.PLAIN)
            await responder.reply(CLEARED_MESSAGE)
            return

        await self._chat(event, Mode.PLAIN, text, responder)

    # --- Rules Mode ---

    async def _handle_rules_input(self, event: InboundMessage, text: str, responder: Responder):
        command = text.strip().lower()

        if command in ("help", "commandlist"):
            metrics_manager.record_command(Mode.RULES.value, "help")
            await responder.reply(self.help_text(Mode.RULES))
            return
        if command == "clear":
            metrics_manager.record_command(Mode.RULES.value, "clear")
            self.registry.clear(event.channel_id, Mode.RULES)
            await responder.reply(CLEARED_MESSAGE)
            return
        if command == "listrules":
            metrics_manager.record_command(Mode.RULES.value, "listrules")
            await responder.reply(self.format_rules())
            return

        match = _RULE_COMMAND.match(text.strip())
        if match:
            name = match.group(1).lower()
            args = (match.group(2) or "").strip()
            metrics_manager.record_command(Mode.RULES.value, name)
            await responder.reply(self._run_rule_command(name, args))
            return

        await self._chat(event, Mode.RULES, text, responder)

    def _run_rule_command(self, name: str, args: str) -> str:
        """Apply addrule/removerule/editrule and return the reply text."""
        p = self.rules_prefix

        if name == "addrule":
            if not args:
                return ADDRULE_USAGE.format(prefix=p)
            self.rules.add(args)
            return RULE_ADDED_MESSAGE

        if name == "removerule":
            if not _NUMBER.match(args) or not self.rules.remove_at(int(args)):
                return REMOVERULE_USAGE.format(prefix=p)
            return RULE_REMOVED_MESSAGE.format(number=int(args))

        # editrule
        if not args:
            return EDITRULE_EXAMPLE_USAGE.format(prefix=p)
        match = _EDIT_ARGS.match(args)
        if not match or not self.rules.edit_at(int(match.group(1)), match.group(2)):
            return EDITRULE_USAGE.format(prefix=p)
        return RULE_UPDATED_MESSAGE.format(number=int(match.group(1)))

    def format_rules(self) -> str:
        """Numbered rule list for listrules."""
        rules = self.rules.list_rules()
        if not rules:
            return NO_RULES_MESSAGE.format(prefix=self.rules_prefix)
        out = "**Rules:**\n" + "\n".join(f"{i}. {rule}" for i, rule in enumerate(rules, start=1))
        if len(out) > self.max_reply_length:
            out = out[:self.max_reply_length - 1] + "…"
        return out

    # --- Chat ---

    async def _chat(self, event: InboundMessage, mode: Mode, text: str, responder: Responder):
        session = self.registry.get_or_create(event.channel_id, mode)

        prompt = apply_reply_context(text, event.replied_to)
        # The session decides under its lock whether this is the first message
        first_prompt = None
        if mode is Mode.RULES and not session.has_history():
            rules_text = self.rules.read()
            if rules_text:
                first_prompt = apply_reply_context(apply_rules_prompt(text, rules_text), event.replied_to)

        async with responder.typing():
            reply = await session.chat(prompt, first_message=first_prompt)

        await self.send_long_message(responder, reply)

    async def send_long_message(self, responder: Responder, text: str):
        """Reply with the first chunk, then send the rest in order."""
        chunks = split_message(text, self.max_reply_length)
        if not chunks:
            return
        await responder.reply(chunks[0])
        for chunk in chunks[1:]:
            await responder.send(chunk)

    # --- Help ---

    def help_text(self, mode: Mode) -> str:
        if mode is Mode.RULES:
            p = self.rules_prefix
            return (
                f"**Commands (`{p}`, rules mode)**\n"
                f"• `{p}` (only) — this list\n"
                f"• `{p} <message>` — chat with Gemini (follows rules)\n  e.g. `{p} What is Python?`\n"
                f"• `{p} addrule <text>` — add a rule\n  e.g. `{p} addrule Always be polite`\n"
                f"• `{p} editrule <number> <new text>` — edit rule at number\n"
                f"  e.g. `{p} editrule 1 Always be concise`\n"
                f"• `{p} removerule <number>` — remove rule at number\n  e.g. `{p} removerule 2`\n"
                f"• `{p} listrules` — list all rules with numbers\n"
                f"• `{p} clear` — clear conversation for this channel"
            )
        tb = self.plain_prefix
        fb = self.rules_prefix
        return (
            f"**TruFraudBot**: `{tb}` = normal chat (shared in this channel), "
            f"`{fb}` = chat that follows your rules.\n"
            f"• `{tb} <message>` — chat normally (or @mention); everyone in this channel shares the convo\n"
            f"• `{tb} clear` — new conversation for this channel\n"
            f"• `{fb}` — rules-mode command list"
        )
