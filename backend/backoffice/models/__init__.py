from .catalog import Product, Stock, Customer
from .purchases import Purchase, PurchaseLine
from .sales import Sale, SaleLine, Payment

__all__ = [
    'Product', 'Stock', 'Customer',
    'Purchase', 'PurchaseLine',
    'Sale', 'SaleLine', 'Payment',
]
