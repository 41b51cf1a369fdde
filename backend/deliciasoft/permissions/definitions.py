# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "VIEW_CATALOG",
        "View Catalog",
        "View products, categories, recipes, supplies, suppliers and locations",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create, edit, toggle and delete catalog entries",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_IMAGES",
        "Manage Images",
        "Upload and delete catalog images",
        PermissionCategory.CATALOG,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View per-location product stock",
        PermissionCategory.INVENTORY,
    ),
    (
        "ADJUST_INVENTORY",
        "Adjust Inventory",
        "Set product stock at a location and add supply stock",
        PermissionCategory.INVENTORY,
    ),
]


# -- PURCHASES --

PURCHASE_PERMISSIONS = [
    (
        "VIEW_PURCHASES",
        "View Purchases",
        "View supply purchases",
        PermissionCategory.PURCHASES,
    ),
    (
        "MANAGE_PURCHASES",
        "Manage Purchases",
        "Create, annul and re-activate supply purchases",
        PermissionCategory.PURCHASES,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "VIEW_SALES",
        "View Sales",
        "View sales, orders and payment installments",
        PermissionCategory.SALES,
    ),
    (
        "CREATE_SALE",
        "Create Sale",
        "Create direct sales and orders",
        PermissionCategory.SALES,
    ),
    (
        "MANAGE_SALES",
        "Manage Sales",
        "Change sale status, annul sales and edit orders",
        PermissionCategory.SALES,
    ),
    (
        "MANAGE_PAYMENTS",
        "Manage Payments",
        "Record and annul payment installments",
        PermissionCategory.SALES,
    ),
]


# -- PRODUCTION --

PRODUCTION_PERMISSIONS = [
    (
        "VIEW_PRODUCTION",
        "View Production",
        "View production runs",
        PermissionCategory.PRODUCTION,
    ),
    (
        "MANAGE_PRODUCTION",
        "Manage Production",
        "Create production runs and change their status",
        PermissionCategory.PRODUCTION,
    ),
]


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    (
        "VIEW_CUSTOMERS",
        "View Customers",
        "View customer records",
        PermissionCategory.CUSTOMERS,
    ),
    (
        "MANAGE_CUSTOMERS",
        "Manage Customers",
        "Create, edit and deactivate customers",
        PermissionCategory.CUSTOMERS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "VIEW_USERS",
        "View Users",
        "View staff users and roles",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create, edit and deactivate staff users",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_PERMISSIONS",
        "Manage Permissions",
        "Create roles and assign permissions to them",
        PermissionCategory.USERS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "SYSTEM_ADMIN",
        "System Administration",
        "Full system access",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + PURCHASE_PERMISSIONS
    + SALES_PERMISSIONS
    + PRODUCTION_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + USER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
