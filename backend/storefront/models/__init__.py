from .users import User
from .catalog import Product, ProductImage, ProductTag
from .orders import Order, OrderItem, OrderStatusHistory, OrderSequence
from .notifications import ProductNotification
from .outbox import EmailMessage
from .security import RateLimitHit

__all__ = [
    'User',
    'Product', 'ProductImage', 'ProductTag',
    'Order', 'OrderItem', 'OrderStatusHistory', 'OrderSequence',
    'ProductNotification',
    'EmailMessage',
    'RateLimitHit',
]
