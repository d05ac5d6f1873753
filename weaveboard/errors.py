"""Exception types raised by WeaveBoard."""

from __future__ import annotations


class WeaveError(Exception):
    """Base class for all WeaveBoard errors."""


class StorageError(WeaveError):
    """A durable store could not be read or written."""


class StorageFullError(StorageError):
    """The metadata store rejected a write because it is over quota."""

    def __init__(self, needed: int, quota: int):
        super().__init__(f"Metadata store quota exceeded ({needed} > {quota} bytes)")
        self.needed = needed
        self.quota = quota


class RelationshipFinderError(WeaveError):
    """The relationship finder failed (transport, API or payload)."""


class MissingApiKeyError(RelationshipFinderError):
    """No API key is configured for the finder's model provider."""


class ResponseParseError(RelationshipFinderError):
    """The finder's response did not contain a usable connections payload."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw
