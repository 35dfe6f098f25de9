"""
TruFraudBot - AI Provider
Gemini generateContent client and backend error classification.
"""

import asyncio
import json
import logging
import time
from enum import Enum
from typing import List, Optional

import aiohttp

from config import GEMINI_API_URL, API_TIMEOUT, DEFAULT_TEMPERATURE, DEFAULT_MAX_TOKENS
from constants import NO_RESPONSE_TEXT
from exceptions import BackendError, TransportError
from prometheus_metrics import metrics_manager

logger = logging.getLogger("providers")


class ErrorKind(Enum):
    """How a failed backend call affects model fallback."""
    AUTH = "auth"
    QUOTA_OR_UNAVAILABLE = "quota_or_unavailable"
    OTHER = "other"


_AUTH_MARKERS = ("401", "api key")
_QUOTA_MARKERS = ("429", "quota", "404", "not found")


def classify_error(status: Optional[int], message: str) -> ErrorKind:
    """Classify a backend failure by substring matching on status and message.

    Auth wins over quota so a rejected key is never retried on other models.
    """
    haystack = f"{status if status is not None else ''} {message or ''}".lower()
    if any(marker in haystack for marker in _AUTH_MARKERS):
        return ErrorKind.AUTH
    if any(marker in haystack for marker in _QUOTA_MARKERS):
        return ErrorKind.QUOTA_OR_UNAVAILABLE
    return ErrorKind.OTHER


def build_payload(turns: List[dict], temperature: float = DEFAULT_TEMPERATURE,
                  max_tokens: int = DEFAULT_MAX_TOKENS) -> dict:
    """Build a generateContent request body from role-tagged turns."""
    return {
        "contents": [
            {"role": t["role"], "parts": [{"text": t["text"]}]}
            for t in turns
        ],
        "generationConfig": {
            "temperature": temperature,
            "maxOutputTokens": max_tokens,
        },
    }


def extract_text(data: dict) -> str:
    """Pull the first candidate's text, or the placeholder when there is none."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return NO_RESPONSE_TEXT
    if text is None:
        return NO_RESPONSE_TEXT
    return str(text).strip()


def extract_error_message(body: str, status: int) -> str:
    """Best-effort error message from an error response body."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        data = None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            msg = error["message"]
            return msg if isinstance(msg, str) else json.dumps(msg)
    return body or f"HTTP {status}"


class GeminiClient:
    """Async client for the Gemini generateContent endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = GEMINI_API_URL,
        timeout: float = API_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create a reusable HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def generate(
        self,
        model: str,
        turns: List[dict],
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS
    ) -> str:
        """Generate a reply for the given turns with one model.

        Raises:
            BackendError: the backend answered with an HTTP error
            TransportError: no usable response was received
        """
        url = f"{self.base_url}/models/{model}:generateContent"
        payload = build_payload(turns, temperature, max_tokens)
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        logger.debug(f"[{model}] Sending {len(turns)} turns, temp={temperature}, max_tokens={max_tokens}")
        session = await self._get_session()
        started = time.monotonic()

        try:
            async with session.post(url, json=payload, headers=headers) as response:
                status = response.status
                body = await response.text()
        except asyncio.TimeoutError:
            metrics_manager.record_api_request(model, "timeout", time.monotonic() - started)
            logger.error(f"[{model}] ✗ TIMEOUT after {self.timeout}s")
            raise TransportError(f"Request timed out after {self.timeout:g}s")
        except aiohttp.ClientError as e:
            metrics_manager.record_api_request(model, "transport_error", time.monotonic() - started)
            logger.error(f"[{model}] ✗ Connection error: {e}")
            raise TransportError(f"Connection error: {e}") from e

        duration = time.monotonic() - started

        if status >= 400:
            message = extract_error_message(body, status)
            metrics_manager.record_api_request(model, "error", duration)
            logger.warning(f"[{model}] ✗ HTTP {status}: {message[:200]}")
            raise BackendError(status, message)

        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, dict):
            metrics_manager.record_api_request(model, "invalid_response", duration)
            raise TransportError("Invalid JSON response")

        metrics_manager.record_api_request(model, "success", duration)
        text = extract_text(data)
        logger.info(f"[{model}] ✓ Success! Response length: {len(text)} chars")
        return text
