from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from ..enums import RefundRequestStatus


class RefundItemCreate(BaseModel):
    perfume_id: int
    volume: int = Field(ge=1)
    quantity: int = Field(ge=1)


class RefundRequestCreate(BaseModel):
    """Schema for requesting a refund of some items of an order"""
    items: List[RefundItemCreate] = Field(min_length=1)


class RefundRequestReject(BaseModel):
    rejection_reason: str = Field(..., min_length=1, max_length=500)


class RefundItemResponse(BaseModel):
    perfume_id: int
    perfume_name: Optional[str] = None
    brand: Optional[str] = None
    volume: int
    quantity: int
    refund_amount: float


class RefundRequestResponse(BaseModel):
    refund_request_id: int
    order_id: int
    order_date: datetime
    invoice_number: Optional[str] = None
    user_id: int
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    items: List[RefundItemResponse]
    total_refund_amount: float
    status: RefundRequestStatus
    rejection_reason: Optional[str] = None
    created_at: datetime
    processed_at: Optional[datetime] = None
