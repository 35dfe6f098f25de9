"""
TruFraudBot - Entry Point
Discord mode when DISCORD_TOKEN is set; otherwise an interactive console chat.
"""

import asyncio
import sys

from config import (
    DISCORD_TOKEN, GEMINI_API_KEY, FB_PREFIX, TB_PREFIX, RULES_FILE,
    CHAT_MODELS, MAX_HISTORY_TURNS, METRICS_PORT
)
from conversation import ConversationSession, SessionRegistry
from providers import GeminiClient
from router import MessageRouter
from rules import RuleStore
from prometheus_metrics import metrics_manager
import logger as log

log.configure_stdlib_logging()


def build_router(client: GeminiClient) -> MessageRouter:
    """Wire the registry and rules store into a router."""
    registry = SessionRegistry(client, models=CHAT_MODELS, max_turns=MAX_HISTORY_TURNS)
    return MessageRouter(
        registry,
        RuleStore(RULES_FILE),
        rules_prefix=FB_PREFIX,
        plain_prefix=TB_PREFIX
    )


# --- Discord Mode ---

async def run_discord(api_key: str):
    from bot_instance import BotInstance

    client = GeminiClient(api_key)
    bot = BotInstance(DISCORD_TOKEN, build_router(client))
    log.startup(f"Starting Discord bot (prefixes: {FB_PREFIX} / {TB_PREFIX})...")
    try:
        await bot.start()
    finally:
        await bot.close()
        await client.close()


# --- Console Mode ---

async def run_console(api_key: str):
    client = GeminiClient(api_key)
    session = ConversationSession(client, models=CHAT_MODELS, max_turns=MAX_HISTORY_TURNS)

    print("\nTruFraudBot - Gemini chatbot")
    print("Commands: /clear  → new conversation  |  /quit  → exit\n")

    try:
        while True:
            try:
                line = await asyncio.to_thread(input, "You: ")
            except EOFError:
                print("\nBye.")
                break

            text = line.strip()
            if not text:
                continue
            if text.lower() == '/quit':
                print("Bye.")
                break
            if text.lower() == '/clear':
                session.clear()
                print("Conversation cleared.")
                continue

            try:
                reply = await session.chat(text)
                print(f"Gemini: {reply}")
            except Exception as e:
                log.error(f"Console chat failed: {e}")
                print(f"Gemini: Error: {e}")
            print()
    finally:
        await client.close()


def prompt_for_api_key() -> str:
    print("Enter your Gemini API key (from https://aistudio.google.com/apikey):")
    try:
        return input().strip()
    except EOFError:
        return ""


def main() -> int:
    from startup import validate_startup

    if not validate_startup(GEMINI_API_KEY, DISCORD_TOKEN, RULES_FILE, interactive=sys.stdin.isatty()):
        log.error("Startup validation failed. Please fix the issues above.")
        return 1

    log.divider()
    if METRICS_PORT:
        metrics_manager.start_metrics_server(METRICS_PORT)

    if DISCORD_TOKEN:
        try:
            asyncio.run(run_discord(GEMINI_API_KEY))
        except KeyboardInterrupt:
            log.info("Shutting down...")
        return 0

    api_key = GEMINI_API_KEY or prompt_for_api_key()
    if not api_key:
        log.error("No API key provided. Set GEMINI_API_KEY or GOOGLE_API_KEY.")
        return 1

    try:
        asyncio.run(run_console(api_key))
    except KeyboardInterrupt:
        print("\nBye.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
