"""
TruFraudBot - Conversations
Per-channel conversation history with model fallback, and the registry
that hands out one session per (channel, mode).
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from config import CHAT_MODELS, MAX_HISTORY_TURNS, DEFAULT_TEMPERATURE, DEFAULT_MAX_TOKENS
from constants import (
    AUTH_ERROR_MESSAGE, MODELS_EXHAUSTED_MESSAGE, BACKEND_ERROR_PREFIX, ERROR_PREVIEW_LENGTH
)
from exceptions import BackendError
from providers import ErrorKind, classify_error
from prometheus_metrics import metrics_manager
import logger as log


class Mode(str, Enum):
    """Which prefix, help text, and session a message uses."""
    PLAIN = "plain"
    RULES = "rules"


@dataclass(frozen=True)
class Turn:
    """One role-tagged message in a transcript."""
    role: str  # "user" or "model"
    text: str

    def to_dict(self) -> dict:
        return {"role": self.role, "text": self.text}


def truncate_error(message: str, limit: int = ERROR_PREVIEW_LENGTH) -> str:
    """Cut a backend error message for display."""
    return message[:limit] + "…" if len(message) > limit else message


class ConversationSession:
    """Bounded turn history plus the model-fallback chat exchange.

    At most one exchange runs at a time, so each model turn directly
    follows the user turn it answers.
    """

    def __init__(
        self,
        client,
        models: Sequence[str] = None,
        max_turns: int = MAX_HISTORY_TURNS,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        label: str = None
    ):
        self.client = client
        self.models = list(models or CHAT_MODELS)
        self.max_turns = max_turns
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.label = label
        self._turns: List[Turn] = []
        self._lock = asyncio.Lock()

    @property
    def turns(self) -> List[Turn]:
        return list(self._turns)

    def has_history(self) -> bool:
        return bool(self._turns)

    def clear(self):
        self._turns = []

    def _append(self, role: str, text: str):
        self._turns.append(Turn(role, text))
        # Oldest turns go first; only what fits is kept
        cap = self.max_turns * 2
        if len(self._turns) > cap:
            del self._turns[:len(self._turns) - cap]

    async def chat(self, user_message: str, first_message: Optional[str] = None) -> str:
        """Send a user message and return the reply (or a user-facing error text).

        first_message, when given, is sent instead of user_message if the
        transcript is still empty once the lock is held.

        The user turn stays in the transcript on every failure path, so a
        retry resends it. A model turn is only added on success.
        """
        async with self._lock:
            if first_message is not None and not self._turns:
                user_message = first_message
            self._append("user", user_message)
            contents = [t.to_dict() for t in self._turns]

            for model in self.models:
                try:
                    text = await self.client.generate(
                        model, contents,
                        temperature=self.temperature,
                        max_tokens=self.max_tokens
                    )
                except BackendError as e:
                    kind = classify_error(e.status, e.message)
                    if kind is ErrorKind.AUTH:
                        log.error(f"Auth rejected by {model}: {e.message[:100]}", self.label)
                        metrics_manager.record_chat_outcome("auth_error")
                        return AUTH_ERROR_MESSAGE
                    if kind is ErrorKind.QUOTA_OR_UNAVAILABLE:
                        log.warn(f"{model} unavailable, trying next model", self.label)
                        metrics_manager.record_fallback(model)
                        continue
                    log.error(f"{model} failed: {e.message[:100]}", self.label)
                    metrics_manager.record_chat_outcome("backend_error")
                    return BACKEND_ERROR_PREFIX + truncate_error(e.message)

                self._append("model", text)
                metrics_manager.record_chat_outcome("reply")
                log.debug(f"{model} replied ({len(text)} chars)", self.label)
                return text

            log.warn("All models exhausted", self.label)
            metrics_manager.record_chat_outcome("exhausted")
            return MODELS_EXHAUSTED_MESSAGE


SessionKey = Tuple[str, Mode]


class SessionRegistry:
    """Lazily created sessions keyed by (channel id, mode)."""

    def __init__(
        self,
        client,
        models: Sequence[str] = None,
        max_turns: int = MAX_HISTORY_TURNS
    ):
        self.client = client
        self.models = list(models or CHAT_MODELS)
        self.max_turns = max_turns
        # Grows by one entry per (channel, mode) ever used; only clear() removes entries
        self._sessions: Dict[SessionKey, ConversationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, channel_id, mode: Mode) -> Optional[ConversationSession]:
        return self._sessions.get((str(channel_id), mode))

    def get_or_create(self, channel_id, mode: Mode) -> ConversationSession:
        """Fetch the session for a channel and mode, creating an empty one if needed."""
        key = (str(channel_id), mode)
        session = self._sessions.get(key)
        if session is None:
            session = ConversationSession(
                self.client,
                models=self.models,
                max_turns=self.max_turns,
                label=f"{mode.value}:{channel_id}"
            )
            self._sessions[key] = session
            metrics_manager.update_active_sessions(len(self._sessions))
            log.debug(f"New {mode.value} session for channel {channel_id}")
        return session

    def clear(self, channel_id, mode: Mode) -> bool:
        """Drop a session; the next message starts fresh. Returns True if one existed."""
        session = self._sessions.pop((str(channel_id), mode), None)
        if session is None:
            return False
        session.clear()
        metrics_manager.update_active_sessions(len(self._sessions))
        return True
