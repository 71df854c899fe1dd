"""
Account directory - maintenance view across every account store.

Used by the admin endpoints to list known email keys and to forget an email
entirely (code, status, credentials and the legacy records).
"""

import logging

from .credentials import credential_from_record, index_username
from .ports import BlobStores, StoreName
from .validation import load_record, normalize_email

logger = logging.getLogger(__name__)

ACCOUNT_STORES = (
    StoreName.USER_CREDENTIALS,
    StoreName.EMAIL_STATUS,
    StoreName.VERIFIED_EMAILS,
    StoreName.EMAIL_CODES,
    StoreName.EMAIL_INDEX,
)


class AccountDirectory:
    def __init__(self, stores: BlobStores) -> None:
        self._stores = stores

    def list_emails(self) -> list[str]:
        """Sorted, de-duplicated email keys found in any account store."""
        seen: set[str] = set()
        for name in ACCOUNT_STORES:
            seen.update(key for key in self._stores.store(name.value).list() if "@" in key)
        return sorted(seen)

    def forget(self, emails: list[str]) -> list[str]:
        """
        Delete every record for the given emails from all account stores.

        A legacy users record is removed too when the email_index entry points
        at it and the record belongs to the same email.

        Returns:
            The normalized keys that were removed
        """
        keys = [normalize_email(email) for email in emails if email and email.strip()]
        for key in keys:
            self._forget_legacy_user(key)
        for name in ACCOUNT_STORES:
            store = self._stores.store(name.value)
            for key in keys:
                store.delete(key)
        logger.info("Forgot %d email(s)", len(keys))
        return keys

    def _forget_legacy_user(self, key: str) -> None:
        # Must run while the email_index entry still exists
        username = index_username(self._stores.store(StoreName.EMAIL_INDEX.value).get(key))
        if username is None:
            return
        users = self._stores.store(StoreName.USERS.value)
        record = credential_from_record(load_record(users.get(username)))
        if record is not None and record.email != key:
            return
        users.delete(username)
