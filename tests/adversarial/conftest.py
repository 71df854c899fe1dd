"""
Shared fixtures for adversarial tests.

Wires the full onboarding service over the in-memory store so attacks run
against the same components the API uses.
"""

from unittest.mock import Mock

import pytest

from src.domain.codes import VerificationCodeService
from src.domain.credentials import CredentialStore
from src.domain.onboarding import OnboardingService
from src.domain.sessions import SessionIssuer
from src.domain.status import StatusReconciler
from src.domain.tokens import TokenCodec

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial

PASSWORD = "victim password 123"


@pytest.fixture
def onboarding(
    code_service: VerificationCodeService,
    reconciler: StatusReconciler,
    credential_store: CredentialStore,
    session_issuer: SessionIssuer,
    codec: TokenCodec,
    clock,
) -> OnboardingService:
    return OnboardingService(
        codes=code_service,
        reconciler=reconciler,
        credentials=credential_store,
        sessions=session_issuer,
        confirm_codec=codec,
        email_sender=Mock(),
        clock=clock,
    )


@pytest.fixture
def victim(reconciler: StatusReconciler, credential_store: CredentialStore) -> str:
    """An email with both proofs and credentials."""
    email = "victim@example.com"
    reconciler.mark_verified(email)
    reconciler.mark_confirmed(email)
    credential_store.create(email, PASSWORD)
    return email
