"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for expiry scenarios
- In-memory blob stores
- Protocol components wired over the shared stores
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.adapters.store.memory import InMemoryBlobStores
from src.domain.codes import VerificationCodeService
from src.domain.credentials import CredentialStore
from src.domain.sessions import SessionIssuer
from src.domain.status import StatusReconciler
from src.domain.tokens import TokenCodec, TokenConfig

TEST_SECRET = "test-signing-secret"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stores() -> InMemoryBlobStores:
    return InMemoryBlobStores()


@pytest.fixture
def reconciler(stores: InMemoryBlobStores, clock: FakeClock) -> StatusReconciler:
    return StatusReconciler(stores, clock=clock)


@pytest.fixture
def code_service(
    stores: InMemoryBlobStores, reconciler: StatusReconciler, clock: FakeClock
) -> VerificationCodeService:
    return VerificationCodeService(stores, reconciler, clock=clock)


@pytest.fixture
def credential_store(
    stores: InMemoryBlobStores, reconciler: StatusReconciler, clock: FakeClock
) -> CredentialStore:
    return CredentialStore(stores, reconciler, clock=clock)


@pytest.fixture
def codec(clock: FakeClock) -> TokenCodec:
    return TokenCodec(TokenConfig(secret=TEST_SECRET), clock=clock)


@pytest.fixture
def session_issuer(codec: TokenCodec, clock: FakeClock) -> SessionIssuer:
    return SessionIssuer(codec, clock=clock, guest_ttl_seconds=1800, user_ttl_seconds=3600)
