"""
Shared pytest fixtures: a scripted Gemini stand-in, a recording responder,
and a rules store in a temporary directory.
"""

import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Flat layout: make the top-level modules importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from conversation import SessionRegistry
from router import InboundMessage, MessageRouter, Responder
from rules import RuleStore


MODELS = ["model-lite", "model-flash", "model-pro"]


class FakeBackend:
    """Scripted replacement for GeminiClient.

    Each call pops the next scripted result: a string is returned, an
    exception is raised. With nothing scripted it answers "ok".
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    async def generate(self, model, turns, temperature=0.7, max_tokens=2048):
        self.calls.append({
            "model": model,
            "turns": [dict(t) for t in turns],
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        result = self.responses.pop(0) if self.responses else "ok"
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def last_user_text(self):
        return self.calls[-1]["turns"][-1]["text"]


class RecordingResponder(Responder):
    """Collects everything the router sends, in order."""

    def __init__(self):
        self.events = []
        self.typing_count = 0

    async def reply(self, text):
        self.events.append(("reply", text))

    async def send(self, text):
        self.events.append(("send", text))

    @asynccontextmanager
    async def typing(self):
        self.typing_count += 1
        self.events.append(("typing", "start"))
        yield
        self.events.append(("typing", "stop"))

    @property
    def texts(self):
        return [text for kind, text in self.events if kind in ("reply", "send")]


def make_event(content, channel_id="100", author_is_bot=False, is_private=False,
               mentions_bot=False, replied_to=None):
    return InboundMessage(
        author_id="42",
        author_is_bot=author_is_bot,
        channel_id=channel_id,
        content=content,
        is_private=is_private,
        mentions_bot=mentions_bot,
        replied_to=replied_to,
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def rules_store(tmp_path) -> RuleStore:
    return RuleStore(str(tmp_path / "rules.txt"))


@pytest.fixture
def registry(backend) -> SessionRegistry:
    return SessionRegistry(backend, models=MODELS, max_turns=20)


@pytest.fixture
def router(registry, rules_store) -> MessageRouter:
    return MessageRouter(registry, rules_store, rules_prefix="fb", plain_prefix="tb")


@pytest.fixture
def responder() -> RecordingResponder:
    return RecordingResponder()
