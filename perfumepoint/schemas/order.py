from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from ..enums import OrderStatus, PaymentStatus


class OrderCreate(BaseModel):
    """Schema for creating orders"""
    shipping_address: str = Field(..., min_length=1, max_length=500)
    tax_id: Optional[str] = Field(None, pattern=r"^[0-9]{10,11}$")
    payment_id: str
    card_number: str = Field(..., pattern=r"^[0-9]{12,19}$")
    card_holder: str = Field(..., min_length=1, max_length=100)
    expiry_month: str = Field(..., pattern=r"^(0[1-9]|1[0-2])$")
    expiry_year: str = Field(..., pattern=r"^[0-9]{4}$")
    cvv: str = Field(..., pattern=r"^[0-9]{3}$")

    @field_validator('card_holder')
    @classmethod
    def strip_card_holder(cls, v):
        return v.strip()


class OrderItemSummary(BaseModel):
    perfume_id: int
    perfume_name: str
    brand: Optional[str] = None
    volume: int
    quantity: int
    price: float
    discounted_price: float
    total_price: float


class OrderSummary(BaseModel):
    """Returned right after checkout"""
    order_id: int
    invoice_number: str
    total_amount: float
    discount_amount: float
    items: List[OrderItemSummary]
    shipping_address: str
    card_last_four_digits: str


class OrderResponse(BaseModel):
    order_id: int
    user_id: int
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    items: List[OrderItemSummary]
    total_amount: float
    discount_amount: float
    applied_discount_ids: List[int] = []
    status: OrderStatus
    payment_status: PaymentStatus
    shipping_address: str
    payment_id: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_url: Optional[str] = None
    card_last_four_digits: str
    created_at: datetime


class OrderStatusUpdate(BaseModel):
    """Schema for updating order status"""
    status: OrderStatus
