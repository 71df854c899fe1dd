"""
Onboarding domain service - the email verification and credential bootstrap flow.

Proof of email control comes from two independent channels:

    code channel:  request_code -> verify_code   -> StatusReconciler.mark_verified
    link channel:  request_code -> confirm_email -> StatusReconciler.mark_confirmed

Per-email state:

    Unverified --code ok--> CodeVerified
    Unverified / CodeVerified --link ok--> + LinkConfirmed
    Eligible = CodeVerified AND LinkConfirmed (reached in either order)
    Eligible --create_credentials--> HasCredentials (terminal)

Ordering of request_code:
    1. persist the hashed code (store failure aborts before any email is sent)
    2. sign the confirm link
    3. send the email (failure raises EmailDeliveryFailed; the stored hash is
       unusable without the raw code and is overwritten by the next request)
"""

import html
import logging
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import quote

from .codes import DEFAULT_CODE_TTL_SECONDS, VerificationCodeService
from .credentials import CredentialStore
from .exceptions import (
    CredentialsAlreadyExist,
    InvalidCredentials,
    InvalidInput,
    InvalidToken,
    NotEligible,
    ServerNotConfigured,
)
from .ports import Clock, CodeCheckResult, CreateResult, EmailSender, TokenPurpose, utc_now
from .sessions import IssuedSession, SessionIssuer
from .status import EmailStatus, StatusReconciler
from .tokens import TokenCodec
from .validation import looks_like_email, require_email

logger = logging.getLogger(__name__)

DEFAULT_CONFIRM_TTL_SECONDS = 1800
CONFIRM_PATH = "/v1/confirm-email"


@dataclass(frozen=True)
class VerificationEmail:
    subject: str
    text: str
    html: str


@dataclass(frozen=True)
class AccountStatus:
    """Outward view of one email: both proofs plus credential presence."""

    email: str
    status: EmailStatus
    has_credentials: bool


def build_confirm_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}{CONFIRM_PATH}?token={quote(token, safe='')}"


def build_verification_email(code: str, confirm_link: str, code_ttl_minutes: int) -> VerificationEmail:
    """Construct the message carrying both the code and the confirm link."""
    text = (
        f"Your code: {code}\n\n"
        f"Confirm your email:\n{confirm_link}\n\n"
        f"The code expires in {code_ttl_minutes} minutes."
    )
    body = (
        '<div style="font-family:system-ui,Segoe UI,Roboto,Helvetica,Arial,sans-serif">'
        "<p>Your verification code:</p>"
        f'<p style="font-size:24px;font-weight:700;letter-spacing:.08em">{html.escape(code)}</p>'
        f'<p><a href="{html.escape(confirm_link, quote=True)}">Click here to confirm your email</a></p>'
        f'<p style="color:#4b5563">The code expires in {code_ttl_minutes} minutes.</p>'
        "</div>"
    )
    return VerificationEmail(subject="Verify your email", text=text, html=body)


@dataclass
class OnboardingService:
    """
    Domain service for the verification and credential flow.

    Orchestrates the five protocol components; holds no state of its own.
    """

    codes: VerificationCodeService
    reconciler: StatusReconciler
    credentials: CredentialStore
    sessions: SessionIssuer | None
    confirm_codec: TokenCodec | None
    email_sender: EmailSender
    clock: Clock = utc_now
    code_ttl_seconds: int = DEFAULT_CODE_TTL_SECONDS
    confirm_ttl_seconds: int = DEFAULT_CONFIRM_TTL_SECONDS

    def request_code(self, email: str, base_url: str) -> str:
        """
        Issue a verification code and confirm link, then email both.

        Args:
            email: Address to verify (normalized here)
            base_url: Public base URL used to build the confirm link

        Returns:
            Normalized email address

        Raises:
            InvalidInput: If email is malformed
            ServerNotConfigured: If no code signing secret is configured
            StoreUnavailable: If the code could not be persisted (nothing sent)
            EmailDeliveryFailed: If the provider did not accept the message
        """
        key = require_email(email)
        confirm_codec = self._confirm_codec()
        code = self.codes.issue(key)

        now = self.clock()
        token = confirm_codec.sign(
            {
                "sub": key,
                "email": key,
                "purpose": TokenPurpose.CONFIRM.value,
                "iat": int(now.timestamp()),
                "exp": int((now + timedelta(seconds=self.confirm_ttl_seconds)).timestamp()),
            }
        )
        message = build_verification_email(
            code, build_confirm_link(base_url, token), self.code_ttl_seconds // 60
        )
        self.email_sender.send(key, message.subject, message.text, message.html)
        logger.info("Verification email sent to %s", key)
        return key

    def verify_code(self, email: str, code: str) -> CodeCheckResult:
        """Validate a typed code; on OK the email is marked verified."""
        return self.codes.validate(email, code)

    def confirm_email(self, token: str) -> EmailStatus:
        """
        Accept a clicked confirm link.

        Raises:
            InvalidToken: If the token is invalid, expired or not a confirm token
        """
        claims = self._confirm_codec().verify(token)
        email = claims.get("email") or claims.get("sub")
        if claims.get("purpose") != TokenPurpose.CONFIRM.value:
            raise InvalidToken()
        if not isinstance(email, str) or not looks_like_email(email):
            raise InvalidToken()
        return self.reconciler.mark_confirmed(email)

    def create_credentials(self, email: str, password: str) -> str:
        """
        Create the password credential for a fully proven email.

        Returns:
            Normalized email address (the account uid)

        Raises:
            InvalidInput: If email or password is malformed
            NotEligible: If code verification or link confirmation is missing
            CredentialsAlreadyExist: If credentials were already created
        """
        key = require_email(email)
        result = self.credentials.create(key, password)
        if result == CreateResult.NOT_ELIGIBLE:
            raise NotEligible(key)
        if result == CreateResult.ALREADY_EXISTS:
            raise CredentialsAlreadyExist(key)
        return key

    def login(self, login_id: str, password: str) -> IssuedSession:
        """
        Authenticate and issue a user session.

        login_id is the account email or, for legacy accounts, the username.
        The session is always issued for the account email.

        Raises:
            InvalidInput: If login_id or password is empty
            InvalidCredentials: For unknown logins and wrong passwords alike
            ServerNotConfigured: If no session signing secret is configured
        """
        if not login_id or not login_id.strip() or not password:
            raise InvalidInput("Missing loginId or password")
        sessions = self._sessions()
        email = self.credentials.verify_login(login_id, password)
        if email is None:
            raise InvalidCredentials()
        logger.info("Login succeeded for %s", email)
        return sessions.issue_authenticated(email)

    def guest_login(self) -> IssuedSession:
        return self._sessions().issue_guest()

    def check_status(self, email: str) -> AccountStatus:
        key = require_email(email)
        return AccountStatus(
            email=key,
            status=self.reconciler.status(key),
            has_credentials=self.credentials.exists(key),
        )

    def sync_status(self, email: str) -> AccountStatus:
        """Reconcile legacy status sources, then report."""
        key = require_email(email)
        return AccountStatus(
            email=key,
            status=self.reconciler.reconcile(key),
            has_credentials=self.credentials.exists(key),
        )

    def _confirm_codec(self) -> TokenCodec:
        if self.confirm_codec is None:
            raise ServerNotConfigured("Code signing secret is not configured")
        return self.confirm_codec

    def _sessions(self) -> SessionIssuer:
        if self.sessions is None:
            raise ServerNotConfigured("Session signing secret is not configured")
        return self.sessions

