# Overview: Default role -> permission mappings seeded by `flask system init`.

from .definitions import PERMISSION_DEFINITIONS


DEFAULT_ROLE_PERMISSIONS = {
    # Admin has everything
    "admin": [perm[0] for perm in PERMISSION_DEFINITIONS],
    "employee": [
        "VIEW_CATALOG",
        "VIEW_INVENTORY",
        "ADJUST_INVENTORY",
        "VIEW_PURCHASES",
        "VIEW_SALES",
        "CREATE_SALE",
        "MANAGE_PAYMENTS",
        "VIEW_PRODUCTION",
        "MANAGE_PRODUCTION",
        "VIEW_CUSTOMERS",
        "MANAGE_CUSTOMERS",
    ],
}

# Customers have no role row; they always hold this fixed set.
# Sales created by a customer are forced to ORDER kind for themselves.
CUSTOMER_ACCOUNT_PERMISSIONS = frozenset({
    "VIEW_CATALOG",
    "VIEW_SALES",
    "CREATE_SALE",
})
