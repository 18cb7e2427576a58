from .restaurant import Restaurant
from .category import Category
from .menu_item import MenuItem
from .order import Order, OrderStatusEnum, PaymentMethodEnum, TERMINAL_STATUSES
from .order_item import OrderItem
from .push_subscription import PushSubscription

__all__ = [
    "Restaurant",
    "Category",
    "MenuItem",
    "Order",
    "OrderStatusEnum",
    "PaymentMethodEnum",
    "TERMINAL_STATUSES",
    "OrderItem",
    "PushSubscription",
]
