"""
TruFraudBot - Exceptions
Error types raised by the backend client and the rules store.
"""

from typing import Optional


class BotError(Exception):
    """Base class for bot errors."""


class BackendError(BotError):
    """The text-generation backend answered with an error.

    Attributes:
        status: HTTP status code, or None when no response was received
        message: Error message reported by the backend
    """

    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        super().__init__(f"HTTP {status}: {message}" if status is not None else message)


class TransportError(BackendError):
    """The backend could not be reached or returned an unreadable response."""

    def __init__(self, message: str):
        super().__init__(None, message)


class StorageError(BotError):
    """The rules file could not be read or written."""
