from .catalog import (
    Location, Image, ProductCategory, SupplyCategory, Supply,
    Recipe, RecipeLine, Product, Supplier,
)
from .customers import Customer
from .inventory import InventoryRecord
from .sales import Sale, SaleLine, Order, PaymentInstallment
from .production import ProductionRun, ProductionLine
from .purchases import Purchase, PurchaseLine
from .auth import Role, User, Permission, RolePermission, SessionToken

__all__ = [
    'Location', 'Image', 'ProductCategory', 'SupplyCategory', 'Supply',
    'Recipe', 'RecipeLine', 'Product', 'Supplier',
    'Customer',
    'InventoryRecord',
    'Sale', 'SaleLine', 'Order', 'PaymentInstallment',
    'ProductionRun', 'ProductionLine',
    'Purchase', 'PurchaseLine',
    'Role', 'User', 'Permission', 'RolePermission', 'SessionToken',
]
