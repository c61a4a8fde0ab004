from .base import Base, utcnow, as_utc
from .exceptions import (
    AccessControlError,
    BranchMismatchError,
    ConfigurationError,
    RecordNotFoundError,
    SystemRoleError,
    UnknownPermissionError,
)

__all__ = [
    "Base",
    "utcnow",
    "as_utc",
    "AccessControlError",
    "BranchMismatchError",
    "ConfigurationError",
    "RecordNotFoundError",
    "SystemRoleError",
    "UnknownPermissionError",
]
