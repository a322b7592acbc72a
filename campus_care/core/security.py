"""Security utilities: Firebase authentication and the authorization policy."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
import logging

from pydantic import BaseModel

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

# Firebase Admin SDK (lazy initialization)
_firebase_app = None


def get_firebase_app(settings: Settings | None = None):
    """Get or initialize Firebase Admin SDK."""
    global _firebase_app

    settings = settings or get_settings()
    if not settings.firebase_enabled:
        return None

    if _firebase_app is None:
        try:
            import firebase_admin
            from firebase_admin import credentials

            # Handle the private key - it may have escaped newlines
            private_key = settings.firebase_private_key.replace("\\n", "\n")

            cred = credentials.Certificate({
                "type": "service_account",
                "project_id": settings.firebase_project_id,
                "client_email": settings.firebase_client_email,
                "private_key": private_key,
                "token_uri": "https://oauth2.googleapis.com/token",
            })
            _firebase_app = firebase_admin.initialize_app(cred)
            logger.info(f"Firebase Admin SDK initialized for project: {settings.firebase_project_id}")
        except (ValueError, OSError) as e:
            logger.error(f"Failed to initialize Firebase Admin SDK: {e}")
            return None

    return _firebase_app


def get_firestore_client(settings: Settings | None = None):
    """Firestore client for the fallback store, or None without credentials."""
    app = get_firebase_app(settings)
    if app is None:
        return None
    from firebase_admin import firestore

    return firestore.client(app)


class FirebaseTokenPayload(BaseModel):
    """Firebase JWT token payload."""

    uid: str  # Firebase user ID
    email: str | None = None
    email_verified: bool = False
    name: str | None = None
    admin: bool = False  # Custom claim set by an operator
    exp: datetime
    iat: datetime


def decode_firebase_token(token: str) -> FirebaseTokenPayload | None:
    """Decode and validate a Firebase ID token."""
    app = get_firebase_app()

    if not app:
        logger.warning("Firebase app not configured")
        return None

    from firebase_admin import auth

    try:
        decoded_token = auth.verify_id_token(token, app=app)
    except (auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError) as e:
        logger.warning(f"Firebase token verification failed: {e}")
        return None
    except (ValueError, auth.CertificateFetchError) as e:
        logger.error(f"Firebase token verification error: {e}")
        return None

    return FirebaseTokenPayload(
        uid=decoded_token["uid"],
        email=decoded_token.get("email"),
        email_verified=decoded_token.get("email_verified", False),
        name=decoded_token.get("name"),
        admin=decoded_token.get("admin") is True,
        exp=datetime.fromtimestamp(decoded_token["exp"], tz=timezone.utc),
        iat=datetime.fromtimestamp(decoded_token["iat"], tz=timezone.utc),
    )


# =============================================================================
# PRINCIPAL & AUTHORIZATION POLICY
# =============================================================================


class Role(str, Enum):
    ADMIN = "admin"
    REPORTER = "reporter"


@dataclass(frozen=True)
class Principal:
    """The authenticated user as the service sees it."""
    uid: str
    display_name: str | None
    email: str | None
    role: Role = Role.REPORTER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class AuthorizationPolicy:
    """Decides roles and who may do what to a report.

    The role is fixed when the token is decoded; every later check reads
    ``principal.role`` instead of comparing emails.
    """

    def __init__(self, admin_emails: set[str] | None = None):
        self._admin_emails = {e.lower() for e in (admin_emails or set())}

    def resolve_role(
        self,
        email: str | None,
        admin_claim: bool = False,
        email_verified: bool = False,
    ) -> Role:
        if admin_claim:
            return Role.ADMIN
        # Only a verified address bootstraps the admin role
        if email and email_verified and email.lower() in self._admin_emails:
            return Role.ADMIN
        return Role.REPORTER

    def principal_from_token(self, payload: FirebaseTokenPayload) -> Principal:
        return Principal(
            uid=payload.uid,
            display_name=payload.name,
            email=payload.email,
            role=self.resolve_role(payload.email, payload.admin, payload.email_verified),
        )

    @staticmethod
    def can_update_status(principal: Principal) -> bool:
        return principal.is_admin

    @staticmethod
    def can_view(principal: Principal, reported_by: str) -> bool:
        return principal.is_admin or principal.uid == reported_by

    @staticmethod
    def can_cancel(principal: Principal, reported_by: str, is_resolved: bool) -> bool:
        return principal.uid == reported_by and not is_resolved
