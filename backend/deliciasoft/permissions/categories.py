# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    CATALOG = "CATALOG"
    INVENTORY = "INVENTORY"
    PURCHASES = "PURCHASES"
    SALES = "SALES"
    PRODUCTION = "PRODUCTION"
    CUSTOMERS = "CUSTOMERS"
    USERS = "USERS"
    SYSTEM = "SYSTEM"
