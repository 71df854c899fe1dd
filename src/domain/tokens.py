"""
Compact signed token codec - HS256 JWTs through PyJWT.

Token layout: base64url(header) "." base64url(payload) "." base64url(signature)

The header is {"alg": "HS256", "typ": "JWT"}. The payload is a claims object
that must carry a finite numeric "exp" (epoch seconds) and a "purpose"
discriminator. The codec is purpose-agnostic: callers check "purpose" after
verify().

Security Design:
----------------
1. jwt.decode() is pinned to algorithms=["HS256"] and compares signatures in
   constant time. Before decoding, each segment must be strict base64url and the
   signature segment must be the canonical encoding of its bytes, so flipping
   the unused bits of the final character is rejected too.

2. Every failure (wrong segment count, bad alphabet, undecodable JSON, signature
   mismatch, missing or past expiry) raises the same InvalidToken. Nothing about
   the cause reaches the caller.

3. Expiry is checked against the injected clock, not the wall clock: a token
   whose exp <= now is invalid even when its signature is good.
"""

import base64
import binascii
import math
import re
from dataclasses import dataclass
from typing import Any

import jwt

from .exceptions import InvalidToken, ServerNotConfigured
from .ports import Clock, utc_now

ALGORITHM = "HS256"
_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

# Expiry is checked here against the injected clock
_DECODE_OPTIONS = {
    "require": ["exp"],
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
}


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(segment + padding)


@dataclass(frozen=True)
class TokenConfig:
    """Signing configuration injected into the codec."""

    secret: str

    def __post_init__(self) -> None:
        if not self.secret:
            raise ServerNotConfigured("Signing secret is not configured")


class TokenCodec:
    """Signs and verifies compact HS256 tokens under one secret."""

    def __init__(self, config: TokenConfig, clock: Clock = utc_now) -> None:
        self._secret = config.secret
        self._clock = clock

    def sign(self, claims: dict[str, Any]) -> str:
        """
        Serialize claims into a signed compact token.

        Args:
            claims: Claims map; must contain a finite numeric "exp" and a "purpose"

        Returns:
            Token string with three base64url segments

        Raises:
            ValueError: If exp or purpose is missing
        """
        if not _is_expiry(claims.get("exp")):
            raise ValueError("claims must include a finite numeric 'exp'")
        if not claims.get("purpose"):
            raise ValueError("claims must include a 'purpose'")

        # Sorted so equal claims always produce the same token
        return jwt.encode(dict(sorted(claims.items())), self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> dict[str, Any]:
        """
        Verify signature and expiry, then return the claims.

        Raises:
            InvalidToken: For any malformed, tampered or expired token
        """
        if not isinstance(token, str):
            raise InvalidToken()
        parts = token.split(".")
        if len(parts) != 3 or not all(_SEGMENT_PATTERN.match(part) for part in parts):
            raise InvalidToken()
        if not _is_canonical(parts[2]):
            raise InvalidToken()

        try:
            claims = jwt.decode(token, self._secret, algorithms=[ALGORITHM], options=_DECODE_OPTIONS)
        except jwt.InvalidTokenError:
            raise InvalidToken() from None

        exp = claims.get("exp")
        if not _is_expiry(exp) or exp <= self._clock().timestamp():
            raise InvalidToken()
        return claims


def _is_canonical(segment: str) -> bool:
    try:
        return b64url_encode(b64url_decode(segment)) == segment
    except (ValueError, binascii.Error):
        return False


def _is_expiry(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
