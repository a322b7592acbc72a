"""Authentication API routes for CampusCare.

Sign-up, sign-in, sign-out and password reset, backed by Firebase
Authentication. The SPA keeps the returned ID token and sends it as a
bearer token on every other request.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, EmailStr, Field

from ..core.dependencies import IdentityDep, PrincipalDep
from ..services.identity import IdentityError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


# =============================================================================
# REQUEST/RESPONSE SCHEMAS
# =============================================================================


class SignUpRequest(BaseModel):
    """Account creation with an initial display name."""
    email: EmailStr
    password: str = Field(..., min_length=6)
    display_name: str | None = Field(default=None, max_length=100)


class SignInRequest(BaseModel):
    """Login request with email and password."""
    email: EmailStr
    password: str


class PasswordResetRequest(BaseModel):
    email: EmailStr


class UserInfo(BaseModel):
    """Account info for a newly created user."""
    uid: str
    email: str | None = None
    display_name: str | None = None


class TokenResponse(BaseModel):
    """Token response after successful sign-in."""
    id_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    uid: str
    email: str | None = None
    display_name: str | None = None


class MessageResponse(BaseModel):
    message: str


def _identity_http_error(e: IdentityError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED if e.unauthenticated else status.HTTP_400_BAD_REQUEST,
        detail=e.message,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================


@router.post("/signup", response_model=UserInfo, status_code=status.HTTP_201_CREATED)
async def sign_up(request: SignUpRequest, identity: IdentityDep):
    """Create an account. The client signs in afterwards to get tokens."""
    try:
        user = await identity.sign_up(request.email, request.password, request.display_name)
    except IdentityError as e:
        raise _identity_http_error(e)
    return UserInfo(uid=user.uid, email=user.email, display_name=user.display_name)


@router.post("/signin", response_model=TokenResponse)
async def sign_in(request: SignInRequest, identity: IdentityDep):
    """Sign in with email and password."""
    try:
        session = await identity.sign_in(request.email, request.password)
    except IdentityError as e:
        raise _identity_http_error(e)

    return TokenResponse(
        id_token=session.id_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        uid=session.uid,
        email=session.email,
        display_name=session.display_name,
    )


@router.post("/signout", response_model=MessageResponse)
async def sign_out(principal: PrincipalDep, identity: IdentityDep):
    """Revoke the caller's refresh tokens."""
    try:
        await identity.sign_out(principal.uid)
    except IdentityError as e:
        raise _identity_http_error(e)
    return MessageResponse(message="Signed out")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(request: PasswordResetRequest, identity: IdentityDep):
    """Send a password reset email."""
    try:
        await identity.send_password_reset(request.email)
    except IdentityError as e:
        # Unknown emails get the same answer as known ones
        if e.code != "EMAIL_NOT_FOUND":
            raise _identity_http_error(e)
        logger.info("Password reset requested for an unknown email")
    return MessageResponse(message="If an account exists for that email, a reset link has been sent")
