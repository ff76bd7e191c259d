from .inventory import Product, StockMovement
from .customers import Customer
from .sales import Order, OrderLine, Payment, PaymentAllocation
from .purchasing import Supplier, Purchase, PurchaseLine

__all__ = [
    'Product', 'StockMovement',
    'Customer',
    'Order', 'OrderLine', 'Payment', 'PaymentAllocation',
    'Supplier', 'Purchase', 'PurchaseLine',
]
