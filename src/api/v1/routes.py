"""
API v1 routes.

Defines REST endpoints for the email verification and credential API:
- POST /v1/request-code         - email a verification code and confirm link
- POST /v1/verify-code          - submit the typed code
- GET|POST /v1/confirm-email    - follow the confirm link
- POST /v1/create-credentials   - set a password once both proofs are done
- POST /v1/login                - password login, returns a session token
- POST /v1/guest-login          - anonymous session
- GET|POST /v1/check-status     - proof and credential status
- GET|POST /v1/sync-email-status - reconcile legacy status records
- GET /v1/session               - verify the bearer session token
- GET /v1/admin/emails, POST /v1/admin/emails/delete - maintenance
"""

import html
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import HTMLResponse

from src.api.dependencies import (
    get_account_directory,
    get_onboarding_service,
    get_public_base_url,
    get_session_claims,
    require_admin,
)
from src.api.models import (
    CreateCredentialsRequest,
    CreateCredentialsResponse,
    EmailListResponse,
    EmailRequest,
    ErrorResponse,
    ForgetEmailsRequest,
    ForgetEmailsResponse,
    LoginRequest,
    RequestCodeResponse,
    SessionClaimsResponse,
    SessionResponse,
    StatusResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from src.domain.exceptions import (
    CredentialsAlreadyExist,
    InvalidCredentials,
    InvalidToken,
    NotEligible,
)
from src.domain.maintenance import AccountDirectory
from src.domain.onboarding import AccountStatus, OnboardingService
from src.domain.ports import CodeCheckResult

router = APIRouter(tags=["v1"])

SESSION_COOKIE = "session_token"


def _status_response(account: AccountStatus) -> StatusResponse:
    return StatusResponse(
        email=account.email,
        verified=account.status.verified,
        confirmed=account.status.confirmed,
        verified_at=account.status.verified_at,
        confirmed_at=account.status.confirmed_at,
        has_credentials=account.has_credentials,
    )


def _html_page(status_code: int, message: str) -> HTMLResponse:
    body = f"<!doctype html><html><body><p>{html.escape(message)}</p></body></html>"
    return HTMLResponse(content=body, status_code=status_code, headers={"Cache-Control": "no-store"})


@router.post(
    "/request-code",
    response_model=RequestCodeResponse,
    responses={
        422: {"description": "Validation error"},
        503: {"model": ErrorResponse, "description": "Store or email provider unavailable"},
    },
    summary="Request a verification code",
    description="Email a verification code and a confirm link to the given address. "
    "Any earlier code for the same address stops working.",
)
async def request_code(
    request_data: EmailRequest,
    service: OnboardingService = Depends(get_onboarding_service),
    base_url: str = Depends(get_public_base_url),
) -> RequestCodeResponse:
    """
    Issue a code and confirm link and send them by email.

    - **email**: Address to verify
    """
    email = service.request_code(request_data.email, base_url)
    return RequestCodeResponse(
        message="Email sent.",
        email=email,
        expires_in_seconds=service.code_ttl_seconds,
    )


@router.post(
    "/verify-code",
    response_model=VerifyCodeResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid or expired code"},
        422: {"description": "Validation error"},
    },
    summary="Verify the emailed code",
)
async def verify_code(
    request_data: VerifyCodeRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> VerifyCodeResponse:
    """
    Submit the code received by email.

    - **email**: Address the code was sent to
    - **code**: Code such as BAV-REK (case and dash ignored)
    """
    result = service.verify_code(request_data.email, request_data.code)

    if result != CodeCheckResult.OK:
        # Unknown, wrong and expired codes share one message
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired code",
        )

    confirmed = service.check_status(request_data.email).status.confirmed
    message = (
        "Code verified and email confirmed. You may proceed."
        if confirmed
        else "Code verified. If your email isn't confirmed yet, click the link in the email."
    )
    return VerifyCodeResponse(message=message, verified=True, confirmed=confirmed)


@router.api_route(
    "/confirm-email",
    methods=["GET", "POST"],
    response_class=HTMLResponse,
    summary="Confirm email from the emailed link",
)
async def confirm_email(
    token: str = Query(default=""),
    service: OnboardingService = Depends(get_onboarding_service),
) -> HTMLResponse:
    """Opened from a mail client, so the answer is a small HTML page."""
    if not token:
        return _html_page(status.HTTP_400_BAD_REQUEST, "Missing token")
    try:
        service.confirm_email(token)
    except InvalidToken:
        return _html_page(status.HTTP_400_BAD_REQUEST, "Invalid or expired link")
    return _html_page(
        status.HTTP_200_OK,
        "Email confirmed! You can return to the site and finish verification.",
    )


@router.post(
    "/create-credentials",
    response_model=CreateCredentialsResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ErrorResponse, "description": "Email not fully verified/confirmed"},
        409: {"model": ErrorResponse, "description": "Credentials already exist"},
        422: {"description": "Validation error"},
    },
    summary="Create password credentials",
    description="Allowed once per email, after both the code and the link were completed.",
)
async def create_credentials(
    request_data: CreateCredentialsRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> CreateCredentialsResponse:
    """
    Create credentials for a verified and confirmed email.

    - **email**: Verified and confirmed address
    - **password**: Password (minimum 8 characters)
    """
    try:
        uid = service.create_credentials(request_data.email, request_data.password)
    except NotEligible:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email not fully verified/confirmed",
        ) from None
    except CredentialsAlreadyExist:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already has credentials",
        ) from None
    return CreateCredentialsResponse(message="Account created", uid=uid)


@router.post(
    "/login",
    response_model=SessionResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        422: {"description": "Validation error"},
    },
    summary="Log in with email or legacy username and password",
)
async def login(
    request_data: LoginRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> SessionResponse:
    """
    Authenticate and receive a session token.

    - **loginId**: Account email, or legacy username (``email`` and ``username`` are accepted too)
    - **password**: Account password
    """
    try:
        session = service.login(request_data.login_id, request_data.password)
    except InvalidCredentials:
        # Same response for unknown email and wrong password
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        ) from None
    return SessionResponse(
        email=session.subject,
        session_token=session.token,
        expires_at=session.expires_at,
    )


@router.post(
    "/guest-login",
    response_model=SessionResponse,
    summary="Start a guest session",
)
async def guest_login(
    response: Response,
    service: OnboardingService = Depends(get_onboarding_service),
) -> SessionResponse:
    """Issue a guest session and set it as a cookie as well."""
    session = service.guest_login()
    response.set_cookie(
        SESSION_COOKIE,
        session.token,
        max_age=session.ttl_seconds,
        path="/",
        samesite="lax",
        secure=True,
    )
    return SessionResponse(session_token=session.token, expires_at=session.expires_at)


@router.get(
    "/check-status",
    response_model=StatusResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid email"}},
    summary="Check verification status",
)
async def check_status_get(
    email: str = Query(...),
    service: OnboardingService = Depends(get_onboarding_service),
) -> StatusResponse:
    return _status_response(service.check_status(email))


@router.post(
    "/check-status",
    response_model=StatusResponse,
    summary="Check verification status",
)
async def check_status_post(
    request_data: EmailRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> StatusResponse:
    """
    Report both proofs and whether credentials exist.

    - **email**: Address to look up
    """
    return _status_response(service.check_status(request_data.email))


@router.get(
    "/sync-email-status",
    response_model=StatusResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid email"}},
    summary="Reconcile status records",
)
async def sync_email_status_get(
    email: str = Query(...),
    service: OnboardingService = Depends(get_onboarding_service),
) -> StatusResponse:
    return _status_response(service.sync_status(email))


@router.post(
    "/sync-email-status",
    response_model=StatusResponse,
    summary="Reconcile status records",
    description="Merge legacy status records into the canonical one. Safe to repeat.",
)
async def sync_email_status_post(
    request_data: EmailRequest,
    service: OnboardingService = Depends(get_onboarding_service),
) -> StatusResponse:
    return _status_response(service.sync_status(request_data.email))


@router.get(
    "/session",
    response_model=SessionClaimsResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or expired session"}},
    summary="Inspect the current session",
)
async def current_session(
    claims: dict[str, Any] = Depends(get_session_claims),
) -> SessionClaimsResponse:
    """Return the claims of a valid bearer session token."""
    return SessionClaimsResponse(claims=claims)


@router.get(
    "/admin/emails",
    response_model=EmailListResponse,
    dependencies=[Depends(require_admin)],
    summary="List known emails",
)
async def list_emails(
    directory: AccountDirectory = Depends(get_account_directory),
) -> EmailListResponse:
    return EmailListResponse(emails=directory.list_emails())


@router.post(
    "/admin/emails/delete",
    response_model=ForgetEmailsResponse,
    dependencies=[Depends(require_admin)],
    summary="Delete every record for the given emails",
)
async def forget_emails(
    request_data: ForgetEmailsRequest,
    directory: AccountDirectory = Depends(get_account_directory),
) -> ForgetEmailsResponse:
    return ForgetEmailsResponse(deleted=directory.forget(request_data.emails))
