from .auth import User, SessionToken
from .tenancy import Store
from .catalog import Category, Size, Color, Product, Image, Variant
from .orders import Order, OrderItem

__all__ = [
    'User', 'SessionToken',
    'Store',
    'Category', 'Size', 'Color', 'Product', 'Image', 'Variant',
    'Order', 'OrderItem',
]
