"""
Core module - Configuration, database, security, and utilities.
"""

from app.core.config import get_settings, settings
from app.core.database import Base, close_db, get_db, init_db
from app.core.errors import (
    AuthorizationError,
    DependencyError,
    NotFoundError,
    PartialBatchError,
    PermitServiceError,
    StateConflictError,
    ValidationError,
)
from app.core.redis import close_redis, get_redis, init_redis
from app.core.security import create_access_token, decode_token
from app.core.working_days import add_working_days, is_working_day, working_days_between

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "get_redis",
    "init_redis",
    "close_redis",
    # Security
    "create_access_token",
    "decode_token",
    # Errors
    "PermitServiceError",
    "ValidationError",
    "StateConflictError",
    "NotFoundError",
    "AuthorizationError",
    "DependencyError",
    "PartialBatchError",
    # Working days
    "add_working_days",
    "is_working_day",
    "working_days_between",
]
