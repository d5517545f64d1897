from .cart import Cart
from .cart_item import CartItem
from .discount import Discount, discount_perfumes
from .order import Order
from .order_item import OrderItem
from .perfume import Perfume, PerfumeVariant
from .refund_request import RefundRequest, RefundRequestItem
from .user import User


__all__ = [
    "Cart",
    "CartItem",
    "Discount",
    "discount_perfumes",
    "Order",
    "OrderItem",
    "Perfume",
    "PerfumeVariant",
    "RefundRequest",
    "RefundRequestItem",
    "User",
]
