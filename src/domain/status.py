"""
Email status reconciler - merges the two independent proofs of email control.

The code channel (verify-code) and the link channel (confirm-email) complete
independently and in any order. Each one only ever raises its own flag; the
merge rule makes lost updates harmless:

    boolean fields  -> logical OR across all sources
    timestamp fields -> earliest non-null wins

Both rules are commutative, associative and idempotent, so applying the same
updates in any order yields the same record, and no merge resets a true flag.

There is no compare-and-swap in the store. Two concurrent writers that read
the same old record can still lose one update; the lost flag comes back when
its proof is repeated, and the next write carries both forward.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from .ports import BlobStores, Clock, StoreName, utc_now
from .validation import dump_record, format_instant, load_record, parse_instant, require_email

logger = logging.getLogger(__name__)

RECORD_KIND = "email_status"
RECORD_VERSION = 1


@dataclass(frozen=True)
class EmailStatus:
    """Canonical per-email proof record."""

    verified: bool = False
    verified_at: datetime | None = None
    confirmed: bool = False
    confirmed_at: datetime | None = None

    @property
    def eligible(self) -> bool:
        """Both proofs present: credential creation may proceed."""
        return self.verified and self.confirmed

    def merge(self, other: "EmailStatus") -> "EmailStatus":
        return EmailStatus(
            verified=self.verified or other.verified,
            verified_at=_earliest(self.verified_at, other.verified_at),
            confirmed=self.confirmed or other.confirmed,
            confirmed_at=_earliest(self.confirmed_at, other.confirmed_at),
        )

    def to_record(self, email: str) -> dict[str, Any]:
        return {
            "kind": RECORD_KIND,
            "version": RECORD_VERSION,
            "email": email,
            "verified": self.verified,
            "verified_at": format_instant(self.verified_at) if self.verified_at else None,
            "confirmed": self.confirmed,
            "confirmed_at": format_instant(self.confirmed_at) if self.confirmed_at else None,
        }


def _earliest(a: datetime | None, b: datetime | None) -> datetime | None:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def status_from_record(record: dict[str, Any] | None) -> EmailStatus:
    """
    Convert any stored status shape into an EmailStatus.

    Handles the canonical record plus the legacy variants:
    - camel-case fields with millisecond timestamps ({"verifiedAt": 1717000000000})
    - snake-case fields with ISO timestamps ({"confirmed_at": "2024-05-01T..."})

    A present timestamp implies its flag even when the boolean is missing.
    """
    if not record:
        return EmailStatus()

    verified_at = parse_instant(record.get("verified_at", record.get("verifiedAt")))
    confirmed_at = parse_instant(record.get("confirmed_at", record.get("confirmedAt")))
    return EmailStatus(
        verified=record.get("verified") is True or verified_at is not None,
        verified_at=verified_at,
        confirmed=record.get("confirmed") is True or confirmed_at is not None,
        confirmed_at=confirmed_at,
    )


class StatusReconciler:
    """
    Owner of the canonical EmailStatus record.

    The canonical record lives in the email_status store. The legacy
    verified_emails store is only read, and only by reconcile().
    """

    def __init__(self, stores: BlobStores, clock: Clock = utc_now) -> None:
        self._stores = stores
        self._clock = clock

    def status(self, email: str) -> EmailStatus:
        """Plain read of the canonical record, defaulting to all-false."""
        key = require_email(email)
        return self._read(StoreName.EMAIL_STATUS, key)

    def mark_verified(self, email: str) -> EmailStatus:
        """Raise the code-channel flag, keeping any earlier timestamp."""
        key = require_email(email)
        now = self._clock()
        current = self._read(StoreName.EMAIL_STATUS, key)
        updated = replace(current, verified=True, verified_at=current.verified_at or now)
        self._write(key, updated)
        logger.info("Email verified by code: %s", key)
        return updated

    def mark_confirmed(self, email: str) -> EmailStatus:
        """Raise the link-channel flag, keeping any earlier timestamp."""
        key = require_email(email)
        now = self._clock()
        current = self._read(StoreName.EMAIL_STATUS, key)
        updated = replace(current, confirmed=True, confirmed_at=current.confirmed_at or now)
        self._write(key, updated)
        logger.info("Email confirmed by link: %s", key)
        return updated

    def reconcile(self, email: str) -> EmailStatus:
        """
        Fold every known status source into the canonical record.

        Safe to call at any time and any number of times. Missing sources read
        as all-false and contribute nothing. The canonical record is rewritten
        only when the merge changed it or it was still in a legacy shape.
        """
        key = require_email(email)
        record = load_record(self._stores.store(StoreName.EMAIL_STATUS.value).get(key))
        canonical = status_from_record(record)
        merged = canonical.merge(self._read(StoreName.VERIFIED_EMAILS, key))
        legacy_shape = record is not None and record.get("kind") != RECORD_KIND
        if merged != canonical or legacy_shape:
            self._write(key, merged)
            logger.info("Reconciled status for %s", key)
        return merged

    def _read(self, store_name: StoreName, key: str) -> EmailStatus:
        raw = self._stores.store(store_name.value).get(key)
        return status_from_record(load_record(raw))

    def _write(self, key: str, status: EmailStatus) -> None:
        self._stores.store(StoreName.EMAIL_STATUS.value).set(key, dump_record(status.to_record(key)))
