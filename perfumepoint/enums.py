import enum


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    SALES_MANAGER = "sales_manager"
    PRODUCT_MANAGER = "product_manager"


class OrderStatus(str, enum.Enum):
    PROCESSING = "processing"
    IN_TRANSIT = "in-transit"
    DELIVERED = "delivered"
    REFUNDED = "refunded"
    CANCELED = "canceled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class RefundRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# Forward moves a manager may apply by hand. REFUNDED is only reached through
# refund approval and CANCELED only through cancel_order.
ORDER_STATUS_TRANSITIONS = {
    OrderStatus.PROCESSING: {OrderStatus.IN_TRANSIT},
    OrderStatus.IN_TRANSIT: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.REFUNDED: set(),
    OrderStatus.CANCELED: set(),
}
