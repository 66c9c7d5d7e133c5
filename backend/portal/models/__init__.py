from .catalog import Product, CatalogItem
from .business import Business
from .orders import Order, OrderItem
from .usage import MonthlyFreeBoxUsage
from .entitlements import ApronEntitlement

__all__ = [
    'Product', 'CatalogItem',
    'Business',
    'Order', 'OrderItem',
    'MonthlyFreeBoxUsage',
    'ApronEntitlement',
]
