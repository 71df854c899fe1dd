"""
Domain layer - Pure business logic with zero framework imports.

This package contains the email verification and credential bootstrap
protocol: token codec, verification codes, status reconciliation,
credential store and session issuer. It defines its own port interfaces
for infrastructure abstraction, ensuring true hexagonal architecture
decoupling.
"""

from .codes import VerificationCodeService
from .credentials import CredentialStore
from .exceptions import (
    CredentialsAlreadyExist,
    EmailDeliveryFailed,
    InvalidCredentials,
    InvalidInput,
    InvalidToken,
    NotEligible,
    ServerNotConfigured,
    StoreUnavailable,
    UpstreamUnavailable,
    VerigateError,
)
from .maintenance import AccountDirectory
from .onboarding import AccountStatus, OnboardingService
from .ports import (
    BlobStores,
    CodeCheckResult,
    CreateResult,
    EmailSender,
    KeyValueStore,
    StoreName,
    TokenPurpose,
)
from .sessions import IssuedSession, SessionIssuer
from .status import EmailStatus, StatusReconciler
from .tokens import TokenCodec, TokenConfig

__all__ = [
    "AccountDirectory",
    "AccountStatus",
    "BlobStores",
    "CodeCheckResult",
    "CreateResult",
    "CredentialStore",
    "CredentialsAlreadyExist",
    "EmailDeliveryFailed",
    "EmailSender",
    "EmailStatus",
    "InvalidCredentials",
    "InvalidInput",
    "InvalidToken",
    "IssuedSession",
    "KeyValueStore",
    "NotEligible",
    "OnboardingService",
    "ServerNotConfigured",
    "SessionIssuer",
    "StatusReconciler",
    "StoreName",
    "StoreUnavailable",
    "TokenCodec",
    "TokenConfig",
    "TokenPurpose",
    "UpstreamUnavailable",
    "VerificationCodeService",
    "VerigateError",
]
