"""FastAPI dependencies for authentication, authorization, and service wiring."""

import logging
from dataclasses import dataclass, field
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection

from ..services.identity import IdentityProvider
from ..services.lifecycle import ReportLifecycle
from ..services.notifications import NotificationFanout
from ..services.realtime import ReportChangeFeed
from ..services.setup import SetupState
from ..stores import FallbackReportStore, ReportStore, SqlReportStore, SupabaseStorage
from .config import Settings, get_settings
from .database import get_session_factory
from .errors import CampusCareError, ConfigurationError
from .security import AuthorizationPolicy, Principal, decode_firebase_token, get_firestore_client

logger = logging.getLogger(__name__)

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)


# =============================================================================
# SERVICE CONTAINER
# =============================================================================


@dataclass
class AppServices:
    """Everything the routers need, built once per process in the lifespan."""
    settings: Settings
    policy: AuthorizationPolicy
    setup: SetupState
    feed: ReportChangeFeed
    identity: IdentityProvider | None = None
    storage: SupabaseStorage | None = None
    store: FallbackReportStore | None = None
    fanout: NotificationFanout | None = None
    lifecycle: ReportLifecycle | None = None
    configuration_error: CampusCareError | None = field(default=None, repr=False)


def build_report_store(settings: Settings) -> FallbackReportStore:
    """Assemble the provider chain: SQL first, Firestore second when enabled."""
    providers: list[ReportStore] = []

    if settings.database_url:
        providers.append(SqlReportStore(get_session_factory()))
    else:
        logger.warning("DATABASE_URL not set; primary store disabled")

    if settings.firestore_fallback_enabled:
        client = get_firestore_client(settings)
        if client is not None:
            from ..stores.firestore import FirestoreReportStore

            providers.append(FirestoreReportStore(client))

    # Raises ConfigurationError when the list is empty
    store = FallbackReportStore(providers)
    logger.info(f"Report store providers: {[p.name for p in store.providers]}")
    return store


def build_services(
    settings: Settings,
    store: FallbackReportStore | None = None,
    storage: SupabaseStorage | None = None,
    identity: IdentityProvider | None = None,
) -> AppServices:
    """Wire the service graph. Missing configuration is recorded, not raised."""
    services = AppServices(
        settings=settings,
        policy=AuthorizationPolicy(settings.admin_emails),
        setup=SetupState(bucket=settings.storage_bucket),
        feed=ReportChangeFeed(),
        identity=identity or IdentityProvider(settings),
    )

    if storage is None and settings.storage_configured:
        storage = SupabaseStorage(
            settings.supabase_url,
            settings.supabase_anon_key,
            settings.storage_bucket,
            timeout=settings.http_timeout_seconds,
        )
    services.storage = storage

    if store is None:
        try:
            store = build_report_store(settings)
        except ConfigurationError as e:
            logger.error(f"Report store unavailable: {e.message}")
            services.configuration_error = e
            return services

    services.store = store
    services.fanout = NotificationFanout(
        store.primary,
        max_pending=settings.notification_queue_size,
        failure_log_size=settings.notification_failure_log_size,
    )
    services.lifecycle = ReportLifecycle(
        store=store,
        notifier=services.fanout,
        storage=storage,
        setup=services.setup,
        policy=services.policy,
        feed=services.feed,
    )
    return services


# =============================================================================
# DEPENDENCIES
# =============================================================================


def get_services(connection: HTTPConnection) -> AppServices:
    services = getattr(connection.app.state, "services", None)
    if services is None:
        raise ConfigurationError("Service is not initialized")
    return services


ServicesDep = Annotated[AppServices, Depends(get_services)]


def get_lifecycle(services: ServicesDep) -> ReportLifecycle:
    """The report lifecycle, or a configuration error when no backend is set up."""
    if services.lifecycle is None:
        raise services.configuration_error or ConfigurationError("No data backend is configured")
    return services.lifecycle


def get_fanout(services: ServicesDep) -> NotificationFanout:
    if services.fanout is None:
        raise services.configuration_error or ConfigurationError("No data backend is configured")
    return services.fanout


def get_identity(services: ServicesDep) -> IdentityProvider:
    if services.identity is None:
        raise ConfigurationError("Identity provider is not configured")
    return services.identity


def authenticate_token(services: AppServices, token: str | None) -> Principal | None:
    """Resolve a raw ID token to a principal, or None if it does not verify."""
    if not token:
        return None
    payload = decode_firebase_token(token)
    if payload is None:
        return None
    return services.policy.principal_from_token(payload)


async def get_current_principal(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
    services: ServicesDep,
) -> Principal:
    """Dependency to get the authenticated principal with its role resolved."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    principal = authenticate_token(services, credentials.credentials)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def require_admin(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> Principal:
    """Require the admin role."""
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return principal


# Type aliases for cleaner dependency injection
PrincipalDep = Annotated[Principal, Depends(get_current_principal)]
AdminDep = Annotated[Principal, Depends(require_admin)]
LifecycleDep = Annotated[ReportLifecycle, Depends(get_lifecycle)]
FanoutDep = Annotated[NotificationFanout, Depends(get_fanout)]
IdentityDep = Annotated[IdentityProvider, Depends(get_identity)]
