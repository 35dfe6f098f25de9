"""
Unit tests for ConversationSession and SessionRegistry.

Covers model fallback, terminal errors, transcript capping, and
one-exchange-at-a-time ordering.
"""

import asyncio

import pytest

from conftest import FakeBackend, MODELS
from constants import AUTH_ERROR_MESSAGE, MODELS_EXHAUSTED_MESSAGE
from conversation import ConversationSession, Mode, SessionRegistry, Turn, truncate_error
from exceptions import BackendError, TransportError


def roles_and_texts(session):
    return [(t.role, t.text) for t in session.turns]


class TestChat:

    @pytest.mark.asyncio
    async def test_success_appends_user_and_model_turns(self):
        backend = FakeBackend(["Hi!"])
        session = ConversationSession(backend, models=MODELS)

        reply = await session.chat("Hello")

        assert reply == "Hi!"
        assert roles_and_texts(session) == [("user", "Hello"), ("model", "Hi!")]
        assert backend.calls[0]["model"] == "model-lite"
        assert backend.calls[0]["turns"] == [{"role": "user", "text": "Hello"}]
        assert backend.calls[0]["temperature"] == 0.7
        assert backend.calls[0]["max_tokens"] == 2048

    @pytest.mark.asyncio
    async def test_history_is_resent(self):
        backend = FakeBackend(["one", "two"])
        session = ConversationSession(backend, models=MODELS)

        await session.chat("first")
        await session.chat("second")

        assert backend.calls[1]["turns"] == [
            {"role": "user", "text": "first"},
            {"role": "model", "text": "one"},
            {"role": "user", "text": "second"},
        ]

    @pytest.mark.asyncio
    async def test_quota_errors_fall_back_to_next_model(self):
        backend = FakeBackend([
            BackendError(429, "429 quota exceeded"),
            BackendError(429, "429 quota exceeded"),
            "third model answer",
        ])
        session = ConversationSession(backend, models=MODELS)

        reply = await session.chat("Hello")

        assert reply == "third model answer"
        assert [c["model"] for c in backend.calls] == MODELS
        assert roles_and_texts(session) == [("user", "Hello"), ("model", "third model answer")]

    @pytest.mark.asyncio
    async def test_not_found_also_falls_back(self):
        backend = FakeBackend([BackendError(404, "models/model-lite is not found"), "ok"])
        session = ConversationSession(backend, models=MODELS)

        assert await session.chat("Hello") == "ok"
        assert [c["model"] for c in backend.calls] == ["model-lite", "model-flash"]

    @pytest.mark.asyncio
    async def test_all_models_exhausted(self):
        backend = FakeBackend([BackendError(429, "quota")] * 3)
        session = ConversationSession(backend, models=MODELS)

        reply = await session.chat("Hello")

        assert reply == MODELS_EXHAUSTED_MESSAGE
        assert len(backend.calls) == 3
        assert roles_and_texts(session) == [("user", "Hello")]

    @pytest.mark.asyncio
    async def test_auth_error_stops_fallback(self):
        backend = FakeBackend([BackendError(400, "API key not valid. Please pass a valid API key.")])
        session = ConversationSession(backend, models=MODELS)

        reply = await session.chat("Hello")

        assert reply == AUTH_ERROR_MESSAGE
        assert len(backend.calls) == 1
        assert roles_and_texts(session) == [("user", "Hello")]

    @pytest.mark.asyncio
    async def test_other_error_is_terminal_and_truncated(self):
        long_message = "Internal failure " + "x" * 300
        backend = FakeBackend([BackendError(500, long_message)])
        session = ConversationSession(backend, models=MODELS)

        reply = await session.chat("Hello")

        assert reply == "Gemini API error: " + long_message[:200] + "…"
        assert len(backend.calls) == 1
        assert roles_and_texts(session) == [("user", "Hello")]

    @pytest.mark.asyncio
    async def test_transport_error_is_terminal(self):
        backend = FakeBackend([TransportError("Connection error: refused")])
        session = ConversationSession(backend, models=MODELS)

        assert await session.chat("Hello") == "Gemini API error: Connection error: refused"
        assert len(backend.calls) == 1

    @pytest.mark.asyncio
    async def test_retry_resends_unanswered_user_turn(self):
        backend = FakeBackend([BackendError(500, "boom"), "recovered"])
        session = ConversationSession(backend, models=MODELS)

        await session.chat("Hello")
        await session.chat("Hello again")

        assert backend.calls[1]["turns"] == [
            {"role": "user", "text": "Hello"},
            {"role": "user", "text": "Hello again"},
        ]

    @pytest.mark.asyncio
    async def test_unexpected_exception_propagates(self):
        backend = FakeBackend([RuntimeError("bug")])
        session = ConversationSession(backend, models=MODELS)

        with pytest.raises(RuntimeError):
            await session.chat("Hello")


class TestHistory:

    @pytest.mark.asyncio
    async def test_transcript_is_capped_oldest_first(self):
        backend = FakeBackend([f"reply {i}" for i in range(21)])
        session = ConversationSession(backend, models=MODELS, max_turns=20)

        for i in range(20):
            await session.chat(f"message {i}")
        assert len(backend.calls[-1]["turns"]) == 39

        await session.chat("message 20")

        sent = backend.calls[-1]["turns"]
        assert len(sent) == 40
        assert sent[0] == {"role": "model", "text": "reply 0"}
        assert sent[-1] == {"role": "user", "text": "message 20"}
        assert {"role": "user", "text": "message 0"} not in sent
        assert len(session.turns) == 40

    @pytest.mark.asyncio
    async def test_small_cap(self):
        backend = FakeBackend()
        session = ConversationSession(backend, models=MODELS, max_turns=1)

        await session.chat("a")
        await session.chat("b")

        assert backend.calls[-1]["turns"] == [
            {"role": "model", "text": "ok"},
            {"role": "user", "text": "b"},
        ]

    @pytest.mark.asyncio
    async def test_has_history_and_clear(self):
        session = ConversationSession(FakeBackend(), models=MODELS)
        assert session.has_history() is False

        await session.chat("Hello")
        assert session.has_history() is True

        session.clear()
        assert session.has_history() is False
        assert session.turns == []

    @pytest.mark.asyncio
    async def test_failed_exchange_still_counts_as_history(self):
        session = ConversationSession(FakeBackend([BackendError(401, "unauthorized")]), models=MODELS)

        await session.chat("Hello")

        assert session.has_history() is True

    def test_turns_are_immutable(self):
        turn = Turn("user", "x")
        with pytest.raises(AttributeError):
            turn.text = "y"


class TestSerialization:

    @pytest.mark.asyncio
    async def test_concurrent_chats_do_not_interleave(self):
        release = asyncio.Event()
        seen = []

        class SlowBackend:
            async def generate(self, model, turns, temperature=0.7, max_tokens=2048):
                seen.append([t["text"] for t in turns])
                if len(seen) == 1:
                    await release.wait()
                return f"reply {len(seen)}"

        session = ConversationSession(SlowBackend(), models=MODELS)

        first = asyncio.create_task(session.chat("a"))
        for _ in range(3):
            await asyncio.sleep(0)
        second = asyncio.create_task(session.chat("b"))
        for _ in range(3):
            await asyncio.sleep(0)

        assert len(seen) == 1
        release.set()
        assert await asyncio.gather(first, second) == ["reply 1", "reply 2"]

        assert seen[1] == ["a", "reply 1", "b"]
        assert [t.text for t in session.turns] == ["a", "reply 1", "b", "reply 2"]


class TestSessionRegistry:

    def test_get_or_create_is_lazy_and_stable(self, registry):
        assert registry.get("100", Mode.PLAIN) is None

        session = registry.get_or_create("100", Mode.PLAIN)

        assert registry.get_or_create("100", Mode.PLAIN) is session
        assert registry.get(100, Mode.PLAIN) is session
        assert len(registry) == 1

    def test_modes_and_channels_are_isolated(self, registry):
        plain = registry.get_or_create("100", Mode.PLAIN)
        rules = registry.get_or_create("100", Mode.RULES)
        other = registry.get_or_create("200", Mode.PLAIN)

        assert plain is not rules
        assert plain is not other
        assert len(registry) == 3

    @pytest.mark.asyncio
    async def test_clear_replaces_with_fresh_session(self, registry):
        session = registry.get_or_create("100", Mode.RULES)
        await session.chat("hello")

        assert registry.clear("100", Mode.RULES) is True
        assert registry.clear("100", Mode.RULES) is False

        fresh = registry.get_or_create("100", Mode.RULES)
        assert fresh is not session
        assert fresh.has_history() is False

    def test_sessions_use_registry_settings(self, backend):
        registry = SessionRegistry(backend, models=["only-model"], max_turns=3)
        session = registry.get_or_create("1", Mode.PLAIN)

        assert session.models == ["only-model"]
        assert session.max_turns == 3
        assert session.client is backend


def test_truncate_error():
    assert truncate_error("short") == "short"
    assert truncate_error("a" * 201) == "a" * 200 + "…"
    assert truncate_error("a" * 200) == "a" * 200


class TestFirstMessage:

    @pytest.mark.asyncio
    async def test_first_message_used_only_for_empty_transcript(self):
        backend = FakeBackend()
        session = ConversationSession(backend, models=MODELS)

        await session.chat("Hello", first_message="RULES + Hello")
        await session.chat("Again", first_message="RULES + Again")

        assert [t.text for t in session.turns if t.role == "user"] == ["RULES + Hello", "Again"]

    @pytest.mark.asyncio
    async def test_concurrent_first_messages_apply_it_once(self):
        backend = FakeBackend()
        session = ConversationSession(backend, models=MODELS)

        await asyncio.gather(
            session.chat("a", first_message="first a"),
            session.chat("b", first_message="first b"),
        )

        user_texts = [t.text for t in session.turns if t.role == "user"]
        assert user_texts == ["first a", "b"]
