from __future__ import annotations


class TMError(Exception):
    """Base class for translation-memory engine errors."""


class ConfigurationError(TMError, ValueError):
    """Raised when matching settings are out of range.

    Always raised while building a config or a service, never at query time.
    """


class LookupFailure(TMError):
    """The backing store could not deliver candidates for a lookup."""

    def __init__(self, message: str, *, query: str = "", target_language: str = "") -> None:
        super().__init__(message)
        self.query = query
        self.target_language = target_language
