"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class StoreName(str, Enum):
    """
    Logical store names in the key-value backend.

    Canonical stores are written by this service. Legacy stores are only read,
    through the record adapters, and are cleaned up by maintenance operations.
    """

    EMAIL_CODES = "email_codes"
    EMAIL_STATUS = "email_status"
    USER_CREDENTIALS = "user_credentials"

    # Legacy, read-only
    VERIFIED_EMAILS = "verified_emails"
    EMAIL_INDEX = "email_index"
    USERS = "users"


class TokenPurpose(str, Enum):
    """Purpose discriminator carried in every signed token."""

    CONFIRM = "confirm"
    SESSION = "session"


class CodeCheckResult(Enum):
    """
    Result of a verification code check.

    Used by VerificationCodeService.validate() to indicate success or failure reason.
    """

    OK = "ok"
    INVALID = "invalid"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"


class CreateResult(Enum):
    """Result of a credential creation attempt."""

    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    NOT_ELIGIBLE = "not_eligible"


class KeyValueStore(Protocol):
    """
    Port interface for one logical blob store.

    No transactions and no compare-and-swap. Implementations raise
    StoreUnavailable on backend failure and never retry indefinitely.
    """

    def get(self, key: str) -> bytes | None:
        """Return the stored value, or None when the key is absent."""
        ...

    def set(self, key: str, value: bytes) -> None:
        """Store value under key, overwriting any previous value."""
        ...

    def delete(self, key: str) -> None:
        """Remove key. Deleting an absent key is not an error."""
        ...

    def list(self) -> list[str]:
        """Return every key in the store."""
        ...


class BlobStores(Protocol):
    """Port interface resolving a logical store name to a KeyValueStore."""

    def store(self, name: str) -> KeyValueStore:
        """Return the store for the given logical name."""
        ...

    def ping(self) -> None:
        """Raise StoreUnavailable if the backend cannot be reached."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send(self, to: str, subject: str, text: str, html: str) -> None:
        """
        Hand a message to the email provider.

        Args:
            to: Recipient email address
            subject: Subject line
            text: Plain-text body
            html: HTML body

        Raises:
            EmailDeliveryFailed: If the provider did not accept the message
        """
        ...
