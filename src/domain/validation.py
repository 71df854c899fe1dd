"""
Shared validation helpers - input normalization and shape checks.

Every public operation normalizes its inputs through these helpers before
touching storage, so store keys are always the lower-cased email.
"""

import json
import re
from datetime import datetime, timezone
from typing import Any

from .exceptions import InvalidInput

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_CODE_STRIP = re.compile(r"[^A-Z0-9]")

CODE_LENGTH = 6
MIN_PASSWORD_LENGTH = 8


def normalize_email(email: str) -> str:
    """Strip whitespace and lowercase."""
    return email.strip().lower()


def looks_like_email(email: str) -> bool:
    return bool(_EMAIL_PATTERN.match(email.strip()))


def require_email(email: str | None) -> str:
    """
    Normalize an email address and reject malformed input.

    Raises:
        InvalidInput: If the value is missing or not email-shaped
    """
    if not email or not looks_like_email(email):
        raise InvalidInput("Valid email required")
    return normalize_email(email)


def normalize_code(code: str) -> str:
    """Uppercase and drop separators: 'bav-rek' -> 'BAVREK'."""
    return _CODE_STRIP.sub("", code.upper())


def require_code(code: str | None) -> str:
    """
    Normalize a submitted verification code and check its length.

    Raises:
        InvalidInput: If the normalized code is not exactly CODE_LENGTH characters
    """
    cleaned = normalize_code(code or "")
    if len(cleaned) != CODE_LENGTH:
        raise InvalidInput(f"Valid {CODE_LENGTH}-character code required")
    return cleaned


def require_password(password: str | None) -> str:
    """
    Raises:
        InvalidInput: If the password is missing or shorter than MIN_PASSWORD_LENGTH
    """
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


def dump_record(record: dict[str, Any]) -> bytes:
    """Serialize a record for the blob store."""
    return json.dumps(record, separators=(",", ":"), sort_keys=True).encode("utf-8")


def load_record(raw: bytes | None) -> dict[str, Any] | None:
    """
    Parse a stored blob. Unparseable or non-object values read as absent.
    """
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        return None
    return value if isinstance(value, dict) else None


def format_instant(instant: datetime) -> str:
    return instant.astimezone(timezone.utc).isoformat()


def parse_instant(value: Any) -> datetime | None:
    """
    Read a timestamp in any of the shapes found in stored records.

    Accepts ISO 8601 strings and numeric epoch values. Numbers above 1e11 are
    treated as milliseconds. Anything else reads as None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None
