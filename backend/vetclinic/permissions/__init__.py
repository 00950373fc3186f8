# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    CLIENT_PERMISSIONS,
    APPOINTMENT_PERMISSIONS,
    BILLING_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    PURCHASE_PERMISSIONS,
    EXPENSE_PERMISSIONS,
    CASHIER_PERMISSIONS,
    HOSPITALIZATION_PERMISSIONS,
    SETTINGS_PERMISSIONS,
)
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
    has_permission,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "CLIENT_PERMISSIONS",
    "APPOINTMENT_PERMISSIONS",
    "BILLING_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "PURCHASE_PERMISSIONS",
    "EXPENSE_PERMISSIONS",
    "CASHIER_PERMISSIONS",
    "HOSPITALIZATION_PERMISSIONS",
    "SETTINGS_PERMISSIONS",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
    "has_permission",
]
