"""Error taxonomy shared by stores, services and the API layer.

Every failure a backend can produce is reduced to one of the ``ErrorKind``
values before it leaves the store that raised it. Callers branch on ``kind``,
never on vendor error text.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    CONFIGURATION = "configuration"
    SCHEMA_MISSING = "schema_missing"
    AUTHORIZATION = "authorization"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    FORBIDDEN = "forbidden"
    UNAVAILABLE = "unavailable"


class CampusCareError(Exception):
    """Base exception for report operations."""

    kind: ErrorKind = ErrorKind.UNAVAILABLE

    def __init__(self, message: str, remediation: str | None = None):
        super().__init__(message)
        self.message = message
        self.remediation = remediation


class ConfigurationError(CampusCareError):
    """Required collaborator credentials are missing."""

    kind = ErrorKind.CONFIGURATION


class SchemaMissingError(CampusCareError):
    """A table the service depends on does not exist."""

    kind = ErrorKind.SCHEMA_MISSING


class PolicyViolationError(CampusCareError):
    """The backend refused the write because of a row-level security policy."""

    kind = ErrorKind.AUTHORIZATION


class StorageUnavailableError(CampusCareError):
    """The image bucket is missing or object storage is not configured."""

    kind = ErrorKind.STORAGE_UNAVAILABLE


class ReportNotFoundError(CampusCareError):
    """Report does not exist in any backend."""

    kind = ErrorKind.NOT_FOUND


class ForbiddenError(CampusCareError):
    """The principal is not allowed to perform the operation."""

    kind = ErrorKind.FORBIDDEN


class BackendUnavailableError(CampusCareError):
    """Transient or unclassified backend failure."""

    kind = ErrorKind.UNAVAILABLE


class ValidationError(CampusCareError):
    """Input rejected before any backend call."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field_errors: dict[str, str] | None = None):
        super().__init__(message)
        self.field_errors = field_errors or {}
