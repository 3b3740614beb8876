import enum


class OrderStatus(str, enum.Enum):
    pending = "Pending"
    processing = "Processing"
    shipped = "Shipped"
    delivered = "Delivered"
    cancelled = "Cancelled"


# statuses whose order still holds stock
ACTIVE_ORDER_STATUSES = frozenset(
    {
        OrderStatus.pending,
        OrderStatus.processing,
        OrderStatus.shipped,
        OrderStatus.delivered,
    }
)
