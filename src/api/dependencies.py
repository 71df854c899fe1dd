"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.

Infrastructure (stores, email sender, settings, clock) is created once in the
app lifespan and kept on app.state; domain services are cheap and are built
per request from it.
"""

import hmac
from typing import Any

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.config.settings import Settings
from src.domain.codes import VerificationCodeService
from src.domain.credentials import CredentialStore
from src.domain.exceptions import InvalidToken
from src.domain.maintenance import AccountDirectory
from src.domain.onboarding import OnboardingService
from src.domain.ports import BlobStores, Clock, EmailSender
from src.domain.sessions import SessionIssuer
from src.domain.status import StatusReconciler
from src.domain.tokens import TokenCodec, TokenConfig


def get_settings_from_state(request: Request) -> Settings:
    """
    Get settings from app state.

    Settings are loaded during app lifespan startup and stored in app.state.
    """
    return request.app.state.settings


def get_stores(request: Request) -> BlobStores:
    return request.app.state.stores


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_session_issuer(request: Request) -> SessionIssuer:
    """Create session issuer with the session signing secret."""
    settings = get_settings_from_state(request)
    clock = get_clock(request)
    codec = TokenCodec(TokenConfig(secret=settings.effective_session_secret), clock=clock)
    return SessionIssuer(
        codec,
        clock=clock,
        guest_ttl_seconds=settings.guest_session_ttl_seconds,
        user_ttl_seconds=settings.user_session_ttl_seconds,
    )


def get_onboarding_service(request: Request) -> OnboardingService:
    """
    Create onboarding service with injected dependencies.

    Wires together the protocol components over the shared stores. Codecs
    whose secret is missing are left out; the operations that need them raise
    ServerNotConfigured, while the rest of the flow keeps working.
    """
    settings = get_settings_from_state(request)
    stores = get_stores(request)
    clock = get_clock(request)

    confirm_codec = None
    if settings.code_signing_secret:
        confirm_codec = TokenCodec(TokenConfig(secret=settings.code_signing_secret), clock=clock)
    sessions = get_session_issuer(request) if settings.effective_session_secret else None

    reconciler = StatusReconciler(stores, clock=clock)
    return OnboardingService(
        codes=VerificationCodeService(stores, reconciler, clock=clock, ttl_seconds=settings.code_ttl_seconds),
        reconciler=reconciler,
        credentials=CredentialStore(stores, reconciler, clock=clock),
        sessions=sessions,
        confirm_codec=confirm_codec,
        email_sender=get_email_sender(request),
        clock=clock,
        code_ttl_seconds=settings.code_ttl_seconds,
        confirm_ttl_seconds=settings.confirm_ttl_seconds,
    )


def get_account_directory(request: Request) -> AccountDirectory:
    return AccountDirectory(get_stores(request))


def get_public_base_url(request: Request) -> str:
    """
    Base URL for confirm links.

    Uses PUBLIC_BASE_URL when set, otherwise the forwarded host/proto headers
    set by the proxy, falling back to the request's own Host.
    """
    settings = get_settings_from_state(request)
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    return f"{proto}://{host}"


# Bearer security scheme for OpenAPI documentation
http_bearer = HTTPBearer(auto_error=False)


def get_session_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> dict[str, Any]:
    """
    Verify the bearer session token on protected endpoints.

    Missing, invalid and expired tokens are rejected with the same 401.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return issuer.verify(credentials.credentials)
    except InvalidToken:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None


def require_admin(
    request: Request,
    x_admin_key: str | None = Header(default=None),
) -> None:
    """
    Gate maintenance endpoints on the X-Admin-Key header.

    Endpoints are hidden (404) when no admin key is configured.
    """
    expected = get_settings_from_state(request).admin_api_key
    if not expected:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    supplied = (x_admin_key or "").encode()
    if not hmac.compare_digest(supplied, expected.encode()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
