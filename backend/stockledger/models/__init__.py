from .business import Business
from .inventory import Product, LowStockAlert
from .sales import Transaction, TransactionItem, PAYMENT_METHODS

__all__ = [
    'Business',
    'Product', 'LowStockAlert',
    'Transaction', 'TransactionItem', 'PAYMENT_METHODS',
]
