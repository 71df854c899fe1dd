"""
Session issuer - short-lived bearer tokens.

Sessions are not stored server-side. A session is a signed token with
purpose "session"; it ends when its exp passes. There is no revocation list.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .exceptions import InvalidToken
from .ports import Clock, TokenPurpose, utc_now
from .tokens import TokenCodec

GUEST_SUBJECT = "guest"
DEFAULT_GUEST_TTL_SECONDS = 3600
DEFAULT_USER_TTL_SECONDS = 3600


@dataclass(frozen=True)
class IssuedSession:
    token: str
    subject: str
    expires_at: datetime
    ttl_seconds: int


class SessionIssuer:
    """Issues and checks session tokens. No eligibility checks of its own."""

    def __init__(
        self,
        codec: TokenCodec,
        clock: Clock = utc_now,
        guest_ttl_seconds: int = DEFAULT_GUEST_TTL_SECONDS,
        user_ttl_seconds: int = DEFAULT_USER_TTL_SECONDS,
    ) -> None:
        self._codec = codec
        self._clock = clock
        self._guest_ttl = timedelta(seconds=guest_ttl_seconds)
        self._user_ttl = timedelta(seconds=user_ttl_seconds)

    def issue_guest(self) -> IssuedSession:
        return self._issue(GUEST_SUBJECT, self._guest_ttl, {"role": "guest"})

    def issue_authenticated(self, email: str) -> IssuedSession:
        """
        Issue a user session. Call only after CredentialStore.authenticate()
        returned True for this email.
        """
        return self._issue(email, self._user_ttl, {"role": "user", "email": email})

    def verify(self, token: str) -> dict[str, Any]:
        """
        Verify an incoming session token.

        Raises:
            InvalidToken: If invalid, expired or not a session token
        """
        claims = self._codec.verify(token)
        if claims.get("purpose") != TokenPurpose.SESSION.value or not claims.get("sub"):
            raise InvalidToken()
        return claims

    def _issue(self, subject: str, ttl: timedelta, extra: dict[str, Any]) -> IssuedSession:
        now = self._clock()
        expires_at = now + ttl
        claims = {
            **extra,
            "sub": subject,
            "purpose": TokenPurpose.SESSION.value,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return IssuedSession(
            token=self._codec.sign(claims),
            subject=subject,
            expires_at=expires_at,
            ttl_seconds=int(ttl.total_seconds()),
        )
