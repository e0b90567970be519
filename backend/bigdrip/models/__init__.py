from .users import User
from .catalog import Category, Brand, Product, Customer
from .sales import Sale, SaleItem, SaleSequence
from .alerts import LowStockAlert
from .audit import AuditLogEntry

__all__ = [
    'User',
    'Category', 'Brand', 'Product', 'Customer',
    'Sale', 'SaleItem', 'SaleSequence',
    'LowStockAlert',
    'AuditLogEntry',
]
