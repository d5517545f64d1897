from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime, timezone


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Dates with an offset are converted to UTC; naive dates are taken as UTC already"""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class DiscountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    rate: float = Field(..., gt=0, le=100)
    start_date: datetime
    end_date: datetime
    perfume_ids: List[int] = Field(min_length=1)
    is_active: bool = True

    @field_validator('start_date', 'end_date')
    @classmethod
    def normalize_dates(cls, v):
        return to_naive_utc(v)

    @model_validator(mode='after')
    def check_dates(self):
        """End date must come after start date"""
        if self.end_date <= self.start_date:
            raise ValueError('end_date must be after start_date')
        return self


class DiscountUpdate(BaseModel):
    """Every field is optional, only the ones sent are changed"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    rate: Optional[float] = Field(None, gt=0, le=100)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    perfume_ids: Optional[List[int]] = Field(None, min_length=1)
    is_active: Optional[bool] = None

    @field_validator('start_date', 'end_date')
    @classmethod
    def normalize_dates(cls, v):
        return to_naive_utc(v)

    @model_validator(mode='after')
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError('end_date must be after start_date')
        return self


class DiscountedPerfume(BaseModel):
    id: int
    name: str
    brand: str
    original_price: float
    discounted_price: float


class DiscountResponse(BaseModel):
    id: int
    name: str
    rate: float
    start_date: datetime
    end_date: datetime
    is_active: bool
    created_by_id: Optional[int] = None
    perfumes: List[DiscountedPerfume] = []
