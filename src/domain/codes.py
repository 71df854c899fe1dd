"""
Verification code service - short human-typed proof of email control.

Codes look like "BAV-REK": two consonant-vowel-consonant triples joined by a
dash. The consonant set drops L and the vowel set drops I and O, which keeps
the code free of ambiguous characters and makes accidental words unlikely.

Only the SHA-256 hash of the normalized code (uppercase, separators removed)
is stored, together with its expiry. One active code per email: issuing a new
code overwrites the previous one (last writer wins).
"""

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from .exceptions import StoreUnavailable
from .ports import BlobStores, Clock, CodeCheckResult, KeyValueStore, StoreName, utc_now
from .status import StatusReconciler
from .validation import (
    dump_record,
    format_instant,
    load_record,
    normalize_code,
    parse_instant,
    require_code,
    require_email,
)

logger = logging.getLogger(__name__)

CONSONANTS = "BCDFGHJKMNPQRSTVWXYZ"
VOWELS = "AEU"
DEFAULT_CODE_TTL_SECONDS = 600


def generate_code() -> str:
    """Generate a code such as 'BAV-REK' from a cryptographic RNG."""

    def triple() -> str:
        return secrets.choice(CONSONANTS) + secrets.choice(VOWELS) + secrets.choice(CONSONANTS)

    return f"{triple()}-{triple()}"


def hash_code(code: str) -> str:
    """Hex SHA-256 of the normalized code."""
    return hashlib.sha256(normalize_code(code).encode("ascii")).hexdigest()


@dataclass(frozen=True)
class StoredCode:
    """Persisted form of an issued code. The raw code is never stored."""

    code_hash: str
    expires_at: datetime
    issued_at: datetime


class VerificationCodeService:
    """Issues, stores (hashed) and validates single-use verification codes."""

    def __init__(
        self,
        stores: BlobStores,
        reconciler: StatusReconciler,
        clock: Clock = utc_now,
        ttl_seconds: int = DEFAULT_CODE_TTL_SECONDS,
    ) -> None:
        self._stores = stores
        self._reconciler = reconciler
        self._clock = clock
        self._ttl = timedelta(seconds=ttl_seconds)

    def issue(self, email: str) -> str:
        """
        Create a new code for email, replacing any previous one.

        Returns:
            The raw code, for out-of-band delivery. It is not retained.

        Raises:
            InvalidInput: If email is malformed
            StoreUnavailable: If the hash could not be persisted
        """
        key = require_email(email)
        code = generate_code()
        now = self._clock()
        record = {
            "kind": "verification_code",
            "version": 1,
            "code_hash": hash_code(code),
            "expires_at": format_instant(now + self._ttl),
            "issued_at": format_instant(now),
        }
        self._codes().set(key, dump_record(record))
        logger.info("Verification code issued for %s", key)
        return code

    def validate(self, email: str, submitted_code: str) -> CodeCheckResult:
        """
        Check a submitted code against the stored hash.

        On match the email is marked verified and then the code is deleted,
        so a code validates successfully at most once. A mismatch leaves the
        code in place until it expires.

        Returns:
            CodeCheckResult.OK, INVALID, EXPIRED or NOT_FOUND

        Raises:
            InvalidInput: If email or code is malformed
            StoreUnavailable: If marking verified or consuming the code failed
        """
        key = require_email(email)
        cleaned = require_code(submitted_code)

        stored = self._load(key)
        if stored is None:
            return CodeCheckResult.NOT_FOUND
        if self._clock() > stored.expires_at:
            return CodeCheckResult.EXPIRED

        submitted_hash = hash_code(cleaned).encode("ascii")
        if not hmac.compare_digest(submitted_hash, stored.code_hash.encode("utf-8")):
            logger.info("Verification code mismatch for %s", key)
            return CodeCheckResult.INVALID

        self._reconciler.mark_verified(key)
        try:
            self._codes().delete(key)
        except StoreUnavailable:
            logger.error("Email %s verified but code could not be consumed", key)
            raise
        return CodeCheckResult.OK

    def _load(self, key: str) -> StoredCode | None:
        return stored_code_from_record(load_record(self._codes().get(key)))

    def _codes(self) -> KeyValueStore:
        return self._stores.store(StoreName.EMAIL_CODES.value)


def stored_code_from_record(record: dict | None) -> StoredCode | None:
    """
    Convert a stored code record into a StoredCode.

    Also reads the legacy camel-case shape {"codeHash", "exp" (ms), "issuedAt"}.
    Records without a hash or expiry read as absent.
    """
    if record is None:
        return None
    code_hash = record.get("code_hash", record.get("codeHash"))
    expires_at = parse_instant(record.get("expires_at", record.get("exp")))
    issued_at = parse_instant(record.get("issued_at", record.get("issuedAt")))
    if not isinstance(code_hash, str) or expires_at is None:
        return None
    return StoredCode(code_hash=code_hash, expires_at=expires_at, issued_at=issued_at or expires_at)
