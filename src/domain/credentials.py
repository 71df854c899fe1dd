"""
Credential store - password records gated on both email proofs.

Security Design - Timing Oracle Prevention:
------------------------------------------
1. **scrypt** (N=16384, r=8, p=1, 64-byte key, 16-byte random salt) derives the
   stored hash. Parameters are module constants, never read from a record or a
   caller, so a stored record cannot downgrade the work factor.

2. **hmac.compare_digest()** compares derived keys after an equal-length check.

3. **_DUMMY_SALT / _DUMMY_HASH**: when no record exists for the login, the KDF
   still runs against a dummy record, so response time does not reveal whether
   the account exists. Unknown login and wrong password both return False.

Known limitation: create() checks for an existing record and then writes it.
The store has no conditional write, so two concurrent first-time creations for
the same email can both pass the check; the later write wins.
"""

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .ports import BlobStores, Clock, CreateResult, KeyValueStore, StoreName, utc_now
from .status import StatusReconciler
from .validation import (
    dump_record,
    format_instant,
    load_record,
    looks_like_email,
    normalize_email,
    parse_instant,
    require_email,
    require_password,
)

logger = logging.getLogger(__name__)

ALGORITHM = "scrypt"
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
KEY_LENGTH = 64
SALT_BYTES = 16
_SCRYPT_MAXMEM = 64 * 1024 * 1024


def derive_key(password: str, salt: bytes) -> bytes:
    """Run scrypt with the fixed component parameters."""
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt,
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=KEY_LENGTH,
        maxmem=_SCRYPT_MAXMEM,
    )


_DUMMY_SALT = secrets.token_bytes(SALT_BYTES)
_DUMMY_HASH = derive_key("dummy_password_for_timing_safety", _DUMMY_SALT)


@dataclass(frozen=True)
class CredentialRecord:
    """Canonical per-email credential. Never mutated after creation."""

    email: str
    password_hash: str
    salt: str
    algorithm: str
    created_at: datetime | None

    def to_record(self) -> dict[str, Any]:
        return {
            "kind": "credential",
            "version": 1,
            "email": self.email,
            "password_hash": self.password_hash,
            "salt": self.salt,
            "algorithm": self.algorithm,
            "created_at": format_instant(self.created_at) if self.created_at else None,
        }


def credential_from_record(record: dict[str, Any] | None) -> CredentialRecord | None:
    """
    Convert any stored credential shape into a CredentialRecord.

    Reads the canonical record, the earlier {uid, alg, salt, hash, createdAt}
    shape and legacy "users" entries {email, salt_hex, pwd_scrypt_hex}. All of
    them carry hex-encoded scrypt output with the same parameters.
    """
    if not record:
        return None
    email = record.get("email") or record.get("uid") or ""
    salt = record.get("salt") or record.get("salt_hex")
    password_hash = record.get("password_hash") or record.get("hash") or record.get("pwd_scrypt_hex")
    algorithm = record.get("algorithm") or record.get("alg") or ALGORITHM
    if not isinstance(email, str) or not isinstance(salt, str) or not isinstance(password_hash, str):
        return None
    if not email or not salt or not password_hash:
        return None
    return CredentialRecord(
        email=email.strip().lower(),
        password_hash=password_hash,
        salt=salt,
        algorithm=algorithm,
        created_at=parse_instant(record.get("created_at", record.get("createdAt"))),
    )


def index_username(raw: bytes | None) -> str | None:
    """Username stored under a legacy email_index key, lower-cased."""
    if not raw:
        return None
    username = raw.decode("utf-8", errors="replace").strip().strip('"').lower()
    return username or None


class CredentialStore:
    """Creates and authenticates scrypt password credentials keyed by email."""

    def __init__(self, stores: BlobStores, reconciler: StatusReconciler, clock: Clock = utc_now) -> None:
        self._stores = stores
        self._reconciler = reconciler
        self._clock = clock

    def create(self, email: str, password: str) -> CreateResult:
        """
        Create the credential for email, once.

        Eligibility is the reconciled status: both verified and confirmed.

        Returns:
            CREATED, ALREADY_EXISTS or NOT_ELIGIBLE

        Raises:
            InvalidInput: If email or password is malformed
            StoreUnavailable: If a read or the write failed
        """
        key = require_email(email)
        require_password(password)

        if not self._reconciler.reconcile(key).eligible:
            return CreateResult.NOT_ELIGIBLE
        if self._load(key) is not None:
            return CreateResult.ALREADY_EXISTS

        salt = secrets.token_bytes(SALT_BYTES)
        record = CredentialRecord(
            email=key,
            password_hash=derive_key(password, salt).hex(),
            salt=salt.hex(),
            algorithm=ALGORITHM,
            created_at=self._clock(),
        )
        self._credentials().set(key, dump_record(record.to_record()))
        logger.info("Credentials created for %s", key)
        return CreateResult.CREATED

    def authenticate(self, login_id: str, password: str) -> bool:
        """
        Check password for an email or legacy username in constant time.

        Returns:
            True only for the exact password used at creation. Unknown logins,
            unsupported records and wrong passwords all return False.

        Raises:
            StoreUnavailable: If the credential read failed
        """
        return self.verify_login(login_id, password) is not None

    def verify_login(self, login_id: str, password: str) -> str | None:
        """
        Authenticate and resolve the account email.

        login_id is an email, or a username from the legacy users store when it
        is not email-shaped. The KDF runs exactly once on every path.

        Returns:
            The account email on success, None otherwise
        """
        record = self._load_login(login_id)

        salt, expected = _DUMMY_SALT, _DUMMY_HASH
        usable = False
        if record is not None and record.algorithm == ALGORITHM:
            try:
                salt, expected = bytes.fromhex(record.salt), bytes.fromhex(record.password_hash)
                usable = True
            except ValueError:
                logger.warning("Unreadable credential record for %s", record.email)

        # CRITICAL: always derive, even for unknown logins
        attempt = derive_key(password if isinstance(password, str) else "", salt)
        matches = len(attempt) == len(expected) and hmac.compare_digest(attempt, expected)
        if usable and matches:
            return record.email
        return None

    def exists(self, email: str) -> bool:
        """True when a canonical or legacy credential exists for email."""
        return self._load(require_email(email)) is not None

    def _load_login(self, login_id: str) -> CredentialRecord | None:
        if not isinstance(login_id, str) or not login_id.strip():
            return None
        if looks_like_email(login_id):
            return self._load(normalize_email(login_id))
        return self._load_user(login_id.strip().lower())

    def _load(self, key: str) -> CredentialRecord | None:
        record = credential_from_record(load_record(self._credentials().get(key)))
        if record is not None:
            return record

        # Legacy: email_index maps email -> username in the users store
        username = index_username(self._stores.store(StoreName.EMAIL_INDEX.value).get(key))
        if username is None:
            return None
        legacy = self._load_user(username)
        if legacy is None or legacy.email != key:
            return None
        return legacy

    def _load_user(self, username: str) -> CredentialRecord | None:
        return credential_from_record(load_record(self._stores.store(StoreName.USERS.value).get(username)))

    def _credentials(self) -> KeyValueStore:
        return self._stores.store(StoreName.USER_CREDENTIALS.value)
