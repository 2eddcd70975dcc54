from .auth import User
from .inventory import Category, Product, Movement, ImmutableRecordError
from .sales import Sale, SaleItem, SalePayment

__all__ = [
    'User',
    'Category', 'Product', 'Movement', 'ImmutableRecordError',
    'Sale', 'SaleItem', 'SalePayment',
]
