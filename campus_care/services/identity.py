"""
Identity provider adapter over Firebase Authentication.

Account management (sign-up, sign-out, profile updates) goes through the
Admin SDK. Password sign-in and reset emails are only exposed by the
Identity Toolkit REST API, which takes the project's web API key.
"""

import asyncio
import logging
from dataclasses import dataclass

import httpx

from ..core.config import Settings, get_settings
from ..core.errors import ConfigurationError
from ..core.security import get_firebase_app

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# Identity Toolkit error codes that mean "wrong credentials" rather than a
# malformed request.
CREDENTIAL_ERRORS = frozenset({
    "EMAIL_NOT_FOUND",
    "INVALID_PASSWORD",
    "INVALID_LOGIN_CREDENTIALS",
    "USER_DISABLED",
})


class IdentityError(Exception):
    """The identity provider rejected the request."""

    def __init__(self, message: str, code: str | None = None, unauthenticated: bool = False):
        super().__init__(message)
        self.message = message
        self.code = code
        self.unauthenticated = unauthenticated


@dataclass
class IdentityUser:
    uid: str
    email: str | None
    display_name: str | None


@dataclass
class AuthSession:
    """Tokens returned by a successful password sign-in."""
    uid: str
    email: str | None
    display_name: str | None
    id_token: str
    refresh_token: str
    expires_in: int


def _user_from_record(record) -> IdentityUser:
    return IdentityUser(uid=record.uid, email=record.email, display_name=record.display_name)


class IdentityProvider:
    """Sign-up, sign-in, sign-out, password reset and profile updates."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self._client = client or httpx.AsyncClient(timeout=self.settings.http_timeout_seconds)

    async def close(self):
        await self._client.aclose()

    # =========================================================================
    # ADMIN SDK OPERATIONS
    # =========================================================================

    def _app(self):
        app = get_firebase_app(self.settings)
        if app is None:
            raise ConfigurationError(
                "Firebase credentials are not configured",
                remediation="Set FIREBASE_PROJECT_ID, FIREBASE_CLIENT_EMAIL and FIREBASE_PRIVATE_KEY.",
            )
        return app

    async def sign_up(self, email: str, password: str, display_name: str | None = None) -> IdentityUser:
        """Create an account with an initial display name."""
        from firebase_admin import auth
        from firebase_admin.exceptions import FirebaseError

        app = self._app()
        try:
            record = await asyncio.to_thread(
                auth.create_user,
                email=email,
                password=password,
                display_name=display_name or None,
                app=app,
            )
        except auth.EmailAlreadyExistsError as e:
            raise IdentityError("An account with this email already exists", code="EMAIL_EXISTS") from e
        except ValueError as e:
            raise IdentityError(str(e), code="INVALID_ARGUMENT") from e
        except FirebaseError as e:
            logger.error(f"Firebase sign-up failed: {e}")
            raise IdentityError(str(e), code=str(e.code)) from e

        logger.info(f"Created account {record.uid} ({email})")
        return _user_from_record(record)

    async def sign_out(self, uid: str) -> None:
        """Revoke every refresh token the user holds."""
        from firebase_admin import auth
        from firebase_admin.exceptions import FirebaseError

        app = self._app()
        try:
            await asyncio.to_thread(auth.revoke_refresh_tokens, uid, app=app)
        except FirebaseError as e:
            logger.error(f"Failed to revoke tokens for {uid}: {e}")
            raise IdentityError(str(e), code=str(e.code)) from e

    async def update_profile(self, uid: str, display_name: str) -> IdentityUser:
        from firebase_admin import auth
        from firebase_admin.exceptions import FirebaseError

        app = self._app()
        try:
            record = await asyncio.to_thread(auth.update_user, uid, display_name=display_name, app=app)
        except auth.UserNotFoundError as e:
            raise IdentityError("User not found", code="USER_NOT_FOUND", unauthenticated=True) from e
        except (ValueError, FirebaseError) as e:
            raise IdentityError(str(e), code="UPDATE_FAILED") from e
        return _user_from_record(record)

    # =========================================================================
    # IDENTITY TOOLKIT REST OPERATIONS
    # =========================================================================

    async def _call_toolkit(self, method: str, payload: dict) -> dict:
        api_key = self.settings.firebase_web_api_key
        if not api_key:
            raise ConfigurationError(
                "Firebase web API key is not configured",
                remediation="Set FIREBASE_WEB_API_KEY to the project's web API key.",
            )

        try:
            response = await self._client.post(
                f"{IDENTITY_TOOLKIT_URL}/accounts:{method}",
                params={"key": api_key},
                json=payload,
            )
        except httpx.HTTPError as e:
            logger.error(f"Identity Toolkit {method} request failed: {e}")
            raise IdentityError("Identity provider is unreachable", code="UNAVAILABLE") from e

        if response.is_success:
            return response.json()

        try:
            code = response.json().get("error", {}).get("message", "UNKNOWN")
        except ValueError:
            code = "UNKNOWN"
        # Codes may carry a suffix, e.g. "WEAK_PASSWORD : Password should be ..."
        code = code.split(" : ", 1)[0]
        logger.warning(f"Identity Toolkit {method} rejected: {code}")
        raise IdentityError(
            code.replace("_", " ").capitalize(),
            code=code,
            unauthenticated=code in CREDENTIAL_ERRORS,
        )

    async def sign_in(self, email: str, password: str) -> AuthSession:
        data = await self._call_toolkit(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return AuthSession(
            uid=data["localId"],
            email=data.get("email"),
            display_name=data.get("displayName") or None,
            id_token=data["idToken"],
            refresh_token=data["refreshToken"],
            expires_in=int(data.get("expiresIn", 3600)),
        )

    async def send_password_reset(self, email: str) -> None:
        await self._call_toolkit("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})
        logger.info(f"Password reset email requested for {email}")
