from .tenancy import Shop
from .auth import User, RefreshToken
from .inventory import Product, CustomField
from .notifications import NotificationLog

__all__ = [
    'Shop',
    'User', 'RefreshToken',
    'Product', 'CustomField',
    'NotificationLog',
]
