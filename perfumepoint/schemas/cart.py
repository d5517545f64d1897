from pydantic import BaseModel, Field
from typing import List


class CartItemCreate(BaseModel):
    """Schema for adding a perfume variant to the cart"""
    perfume_id: int
    volume: int = Field(ge=1)
    quantity: int = Field(ge=1, default=1)


class CartSync(BaseModel):
    """Schema for adding several items at once"""
    items: List[CartItemCreate] = Field(min_length=1)


class CartItemDetail(BaseModel):
    """A cart line as read by the order builder"""
    perfume_id: int
    perfume_name: str
    brand: str
    volume: int
    quantity: int
    base_price: float


class CartDetails(BaseModel):
    """Schema for cart responses"""
    id: int
    items: List[CartItemDetail] = []
    total_price: float = 0.0
