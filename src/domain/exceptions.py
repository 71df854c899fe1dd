"""
Domain exceptions - Semantic error types for the verification protocol.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Authentication-class failures (InvalidCredentials, InvalidToken) carry a
fixed generic message so callers cannot distinguish "unknown email" from
"wrong password" or "bad signature" from "expired".
"""


class VerigateError(Exception):
    """Base class for verification domain errors."""

    pass


class InvalidInput(VerigateError):
    """Malformed email, code or password shape. Rejected before touching storage."""

    pass


class InvalidCredentials(VerigateError):
    """Wrong password or unknown login. Deliberately vague."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class InvalidToken(InvalidCredentials):
    """Signed token is malformed, tampered, expired or has the wrong purpose."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class NotEligible(VerigateError):
    """Credential creation attempted before both email proofs completed."""

    pass


class CredentialsAlreadyExist(VerigateError):
    """A credential record already exists for this email (first writer wins)."""

    pass


class UpstreamUnavailable(VerigateError):
    """Store or email provider failed. Retryable."""

    pass


class StoreUnavailable(UpstreamUnavailable):
    """Key-value store read or write failed."""

    pass


class EmailDeliveryFailed(UpstreamUnavailable):
    """Email provider rejected or could not accept the message."""

    pass


class ServerNotConfigured(VerigateError):
    """A required secret is missing from configuration."""

    pass
