from .cart import CartDetails, CartItemCreate, CartItemDetail, CartSync
from .discount import DiscountCreate, DiscountResponse, DiscountedPerfume
from .order import OrderCreate, OrderItemSummary, OrderResponse, OrderStatusUpdate, OrderSummary
from .refund import (
    RefundItemCreate,
    RefundItemResponse,
    RefundRequestCreate,
    RefundRequestReject,
    RefundRequestResponse,
)


__all__ = [
    # cart schemas
    "CartDetails",
    "CartItemCreate",
    "CartItemDetail",
    "CartSync",

    # discount schemas
    "DiscountCreate",
    "DiscountResponse",
    "DiscountedPerfume",

    # order schemas
    "OrderCreate",
    "OrderItemSummary",
    "OrderResponse",
    "OrderStatusUpdate",
    "OrderSummary",

    # refund schemas
    "RefundItemCreate",
    "RefundItemResponse",
    "RefundRequestCreate",
    "RefundRequestReject",
    "RefundRequestResponse",
]
