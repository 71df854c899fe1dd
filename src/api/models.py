"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Response fields use camelCase aliases on the wire.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field


class EmailRequest(BaseModel):
    """Request model carrying just an email (request-code, check-status, sync)."""

    email: EmailStr


class RequestCodeResponse(BaseModel):
    """Response model for a sent verification email."""

    ok: bool = True
    message: str
    email: str
    expires_in_seconds: int = Field(serialization_alias="expiresInSeconds")


class VerifyCodeRequest(BaseModel):
    """Request model for code verification."""

    email: EmailStr
    code: str = Field(
        ...,
        min_length=6,
        max_length=16,
        description="Verification code, e.g. BAV-REK (case and separators ignored)",
    )


class VerifyCodeResponse(BaseModel):
    ok: bool = True
    message: str
    verified: bool
    confirmed: bool


class CreateCredentialsRequest(BaseModel):
    """Request model for credential creation."""

    email: EmailStr
    password: str = Field(..., min_length=8, description="User password (min 8 characters)")


class CreateCredentialsResponse(BaseModel):
    ok: bool = True
    message: str
    uid: str


class LoginRequest(BaseModel):
    """Request model for login. Accepts loginId, or email or username as aliases."""

    login_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("loginId", "login_id", "email", "username"),
    )
    password: str = Field(..., min_length=1)


class SessionResponse(BaseModel):
    """Response model for issued sessions (login and guest-login)."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    email: str | None = None
    session_token: str = Field(serialization_alias="sessionToken")
    expires_at: datetime = Field(serialization_alias="expiresAt")


class StatusResponse(BaseModel):
    """Response model for check-status and sync-email-status."""

    ok: bool = True
    email: str
    verified: bool
    confirmed: bool
    verified_at: datetime | None = Field(default=None, serialization_alias="verifiedAt")
    confirmed_at: datetime | None = Field(default=None, serialization_alias="confirmedAt")
    has_credentials: bool = Field(serialization_alias="hasCredentials")


class SessionClaimsResponse(BaseModel):
    ok: bool = True
    claims: dict[str, Any]


class EmailListResponse(BaseModel):
    ok: bool = True
    emails: list[str]


class ForgetEmailsRequest(BaseModel):
    emails: list[str] = Field(..., min_length=1)


class ForgetEmailsResponse(BaseModel):
    ok: bool = True
    deleted: list[str]


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
