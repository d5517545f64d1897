from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from ..core.dependencies import get_db, RoleChecker
from ..enums import UserRole
from ..models import User
from ..schemas.discount import DiscountCreate, DiscountResponse, DiscountUpdate
from ..services.discount_service import DiscountService

router = APIRouter()
discount_service = DiscountService()

sales_manager_only = RoleChecker([UserRole.SALES_MANAGER])

@router.post("/", response_model=DiscountResponse, status_code=status.HTTP_201_CREATED)
async def create_discount(
    discount_data: DiscountCreate,
    manager: User = Depends(sales_manager_only),
    db: AsyncSession = Depends(get_db)
):
    """
    **Create Discount (Sales Managers Only)**

    Start a percentage discount over a set of perfumes for a date range.
    A perfume can only be part of one discount at a time.
    """
    discount = await discount_service.create_discount(manager.id, discount_data, db)
    return discount_service.to_response(discount)

@router.get("/", response_model=List[DiscountResponse])
async def get_discounts(
    manager: User = Depends(sales_manager_only),
    db: AsyncSession = Depends(get_db)
):
    """List every discount, newest first"""
    discounts = await discount_service.get_all_discounts(db)
    return [discount_service.to_response(discount) for discount in discounts]

@router.put("/{discount_id}", response_model=DiscountResponse)
async def update_discount(
    discount_id: int,
    discount_data: DiscountUpdate,
    manager: User = Depends(sales_manager_only),
    db: AsyncSession = Depends(get_db)
):
    """
    **Update Discount (Creator Only)**

    Change the name, rate, dates, status or perfumes of a discount.
    Only the sales manager who created it may change it.
    """
    discount = await discount_service.update_discount(manager.id, discount_id, discount_data, db)
    return discount_service.to_response(discount)

@router.delete("/{discount_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_discount(
    discount_id: int,
    manager: User = Depends(sales_manager_only),
    db: AsyncSession = Depends(get_db)
):
    """Delete a discount. Its perfumes go back to their list prices."""
    await discount_service.delete_discount(manager.id, discount_id, db)
