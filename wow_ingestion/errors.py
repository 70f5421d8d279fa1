"""
Exception hierarchy for the fetch pipeline.

Every stage raises a specific error type so a failed invocation can be
diagnosed from its log line alone, without retrying it.
"""

from typing import Optional


class IngestionError(Exception):
    """Base exception for all fetch pipeline failures."""

    def __init__(self, message: str, stage: Optional[str] = None) -> None:
        self.stage = stage
        super().__init__(message)

    def __str__(self) -> str:
        message = Exception.__str__(self)
        if self.stage:
            return f"[{self.stage}] {message}"
        return message


class ConfigurationError(IngestionError):
    """Raised for missing or invalid deployment configuration."""


class MalformedTrigger(IngestionError):
    """Raised when a trigger envelope cannot be decoded."""


class SecretResolutionError(IngestionError):
    """Raised when a secret is missing, empty, or times out."""


class AuthenticationError(IngestionError):
    """Raised when the OAuth2 client-credentials grant fails."""


class UpstreamError(IngestionError):
    """Raised for transport failures and non-2xx upstream responses."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        stage: Optional[str] = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message, stage=stage)


class DecodeError(IngestionError):
    """Raised for upstream bodies that are not the expected JSON shape."""


class InvalidAuctionRecord(IngestionError):
    """Raised when an auction record breaks a listing invariant."""

    def __init__(self, message: str, auction_id: int, item_id: int) -> None:
        self.auction_id = auction_id
        self.item_id = item_id
        super().__init__(message)


class MalformedReference(IngestionError):
    """Raised when a realm index link has no numeric trailing id."""

    def __init__(self, message: str, href: str) -> None:
        self.href = href
        super().__init__(message)


class UnknownRealmError(IngestionError, KeyError):
    """
    Raised when a connected realm lookup by name finds nothing.

    Formats like IngestionError rather than quoting the message as KeyError does.
    """


class StorageError(IngestionError):
    """Raised when staged output cannot be written to blob storage."""


class NotificationError(IngestionError):
    """Raised when the loader notification cannot be published."""


class Cancelled(IngestionError):
    """Raised when the invocation is cancelled by its host."""
