# Overview: Permission system package.

from .categories import PermissionCategory
from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS, CUSTOMER_ACCOUNT_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "CUSTOMER_ACCOUNT_PERMISSIONS",
    "get_all_permission_codes",
    "validate_permission_code",
]
