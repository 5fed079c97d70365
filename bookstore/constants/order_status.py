from enum import Enum


class OrderStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"


ALLOWED_TRANSITIONS = {
    OrderStatus.pending: [OrderStatus.processing, OrderStatus.cancelled],
    OrderStatus.processing: [OrderStatus.shipped],
    OrderStatus.shipped: [OrderStatus.delivered],
    OrderStatus.delivered: [],
    OrderStatus.cancelled: [],
}

# a user may cancel only before the shop starts processing
CANCELLABLE_STATUSES = {OrderStatus.pending}

PAYMENT_METHODS = ["Credit Card", "PayPal", "Bank Transfer", "Cash on Delivery"]

SHIPPING_COUNTRIES = ["Vietnam", "United States", "United Kingdom", "Canada", "Australia"]


def can_transition(current: str, new: str) -> bool:
    return OrderStatus(new) in ALLOWED_TRANSITIONS.get(OrderStatus(current), [])
