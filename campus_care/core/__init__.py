"""Core application utilities."""

from .config import Settings, get_settings
from .database import (
    close_db,
    create_engine_for,
    get_engine,
    get_session_factory,
    init_db,
)
from .errors import (
    BackendUnavailableError,
    CampusCareError,
    ConfigurationError,
    ErrorKind,
    ForbiddenError,
    PolicyViolationError,
    ReportNotFoundError,
    SchemaMissingError,
    StorageUnavailableError,
    ValidationError,
)
from .security import AuthorizationPolicy, Principal, Role

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "create_engine_for",
    "get_engine",
    "get_session_factory",
    "init_db",
    "close_db",
    # Errors
    "ErrorKind",
    "CampusCareError",
    "ConfigurationError",
    "SchemaMissingError",
    "PolicyViolationError",
    "StorageUnavailableError",
    "ReportNotFoundError",
    "ValidationError",
    "ForbiddenError",
    "BackendUnavailableError",
    # Security
    "AuthorizationPolicy",
    "Principal",
    "Role",
]
