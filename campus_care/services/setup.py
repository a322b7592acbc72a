"""Deployment setup state: missing tables, missing policies, missing bucket.

These are operator problems, not runtime ones. Once the service sees one,
it stops sending report inserts to the backend until an operator fixes the
deployment and asks for a re-check.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from ..core.errors import (
    CampusCareError,
    ErrorKind,
    PolicyViolationError,
    SchemaMissingError,
    StorageUnavailableError,
)
from ..stores.base import utcnow

logger = logging.getLogger(__name__)


SCHEMA_REMEDIATION = """\
Run the following in the Supabase SQL editor:

CREATE TABLE reports (
  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
  title TEXT NOT NULL,
  description TEXT NOT NULL,
  category TEXT NOT NULL,
  location TEXT NOT NULL,
  status TEXT NOT NULL DEFAULT 'submitted',
  image_url TEXT,
  created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
  updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
  reported_by TEXT NOT NULL,
  reporter_name TEXT NOT NULL,
  reporter_email TEXT NOT NULL
);

CREATE TABLE report_comments (
  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
  report_id UUID NOT NULL,
  content TEXT NOT NULL,
  user_id TEXT NOT NULL,
  user_name TEXT NOT NULL,
  is_admin BOOLEAN NOT NULL DEFAULT false,
  created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE notifications (
  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
  recipient TEXT NOT NULL,
  type TEXT NOT NULL,
  read BOOLEAN NOT NULL DEFAULT false,
  title TEXT NOT NULL,
  content TEXT NOT NULL,
  report_id UUID,
  user_id TEXT,
  created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

POLICY_REMEDIATION = """\
Row-level security is enabled on the reports table but no policy allows
inserts. Add the following policies in the Supabase dashboard:

CREATE POLICY "Enable inserts for authenticated users" ON reports
FOR INSERT TO authenticated, anon
WITH CHECK (true);

CREATE POLICY "Enable public inserts" ON reports
FOR INSERT TO anon
WITH CHECK (true);
"""


def storage_remediation(bucket: str) -> str:
    return (
        f"Create a public storage bucket named '{bucket}' in the Supabase "
        f"dashboard (Storage > New bucket), then run the storage re-check."
    )


@dataclass
class SetupState:
    """What the service has learned about the deployment so far."""
    bucket: str = "report123"
    schema_missing: bool = False
    policy_missing: bool = False
    storage_missing: bool = False
    detected_at: datetime | None = None
    _blocking: CampusCareError | None = field(default=None, repr=False)

    @property
    def submissions_blocked(self) -> bool:
        return self._blocking is not None

    def blocked_error(self) -> CampusCareError | None:
        return self._blocking

    def record_insert_failure(self, error: CampusCareError) -> CampusCareError:
        """Remember a setup failure and return the error with remediation attached."""
        if error.kind == ErrorKind.SCHEMA_MISSING:
            self.schema_missing = True
            blocking = SchemaMissingError(error.message, remediation=SCHEMA_REMEDIATION)
        elif error.kind == ErrorKind.AUTHORIZATION:
            self.policy_missing = True
            blocking = PolicyViolationError(error.message, remediation=POLICY_REMEDIATION)
        else:
            return error

        self.detected_at = utcnow()
        self._blocking = blocking
        logger.error(f"Report submissions blocked until re-check: {error.message}")
        return blocking

    def record_storage_missing(self) -> StorageUnavailableError:
        self.storage_missing = True
        return StorageUnavailableError(
            f"The storage bucket '{self.bucket}' does not exist.",
            remediation=storage_remediation(self.bucket),
        )

    def reset(self) -> None:
        """Operator says the schema and policies are fixed."""
        self.schema_missing = False
        self.policy_missing = False
        self.detected_at = None
        self._blocking = None
        logger.info("Setup state reset; report submissions re-enabled")

    async def recheck_storage(self, storage) -> bool:
        """Re-probe the bucket; returns True when it now exists."""
        if storage is None:
            self.storage_missing = True
            return False
        exists = await storage.bucket_exists()
        self.storage_missing = not exists
        if not exists:
            logger.warning(f"Storage bucket '{self.bucket}' still missing")
        return exists
