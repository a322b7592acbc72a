"""Setup API: what the deployment is missing and how to fix it.

The SPA shows a configuration banner, the table/policy SQL, or the
bucket instructions from these answers, and calls the re-check endpoints
once the operator has acted.
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from ..core.dependencies import AdminDep, PrincipalDep, ServicesDep
from ..core.errors import BackendUnavailableError
from ..services.setup import POLICY_REMEDIATION, SCHEMA_REMEDIATION, storage_remediation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/setup", tags=["setup"])


class SetupStatusResponse(BaseModel):
    """Which collaborators are configured and which setup failures are known."""
    supabase_configured: bool
    storage_configured: bool
    firebase_enabled: bool
    providers: list[str]
    configuration_error: str | None = None
    schema_missing: bool
    policy_missing: bool
    storage_missing: bool
    submissions_blocked: bool
    bucket: str
    remediation: list[str] = []


class StorageRecheckResponse(BaseModel):
    bucket: str
    exists: bool
    remediation: str | None = None


def _status(services) -> SetupStatusResponse:
    settings = services.settings
    setup = services.setup

    remediation = []
    if setup.schema_missing:
        remediation.append(SCHEMA_REMEDIATION)
    if setup.policy_missing:
        remediation.append(POLICY_REMEDIATION)
    if setup.storage_missing:
        remediation.append(storage_remediation(setup.bucket))

    return SetupStatusResponse(
        supabase_configured=settings.supabase_configured,
        storage_configured=services.storage is not None,
        firebase_enabled=settings.firebase_enabled,
        providers=[p.name for p in services.store.providers] if services.store else [],
        configuration_error=services.configuration_error.message if services.configuration_error else None,
        schema_missing=setup.schema_missing,
        policy_missing=setup.policy_missing,
        storage_missing=setup.storage_missing,
        submissions_blocked=setup.submissions_blocked,
        bucket=setup.bucket,
        remediation=remediation,
    )


@router.get("/status", response_model=SetupStatusResponse)
async def get_setup_status(services: ServicesDep):
    """Public so the SPA can show the configuration banner before sign-in."""
    return _status(services)


@router.post("/storage/recheck", response_model=StorageRecheckResponse)
async def recheck_storage(principal: PrincipalDep, services: ServicesDep):
    """Probe the bucket again after the operator created it."""
    try:
        exists = await services.setup.recheck_storage(services.storage)
    except BackendUnavailableError as e:
        logger.warning(f"Storage re-check failed: {e.message}")
        exists = False

    return StorageRecheckResponse(
        bucket=services.setup.bucket,
        exists=exists,
        remediation=None if exists else storage_remediation(services.setup.bucket),
    )


@router.post("/recheck", response_model=SetupStatusResponse)
async def recheck_setup(admin: AdminDep, services: ServicesDep):
    """Re-enable submissions after the tables and policies were created.

    The next insert re-detects the problem if it is still there.
    """
    logger.info(f"Setup re-check requested by {admin.uid}")
    services.setup.reset()
    return _status(services)
