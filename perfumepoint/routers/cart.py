from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import get_db, get_current_user
from ..models import User
from ..schemas.cart import CartDetails, CartSync
from ..services.cart_service import CartService

router = APIRouter()
cart_service = CartService()

@router.get("/", response_model=CartDetails)
async def get_cart(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get current user's cart with details"""
    return await cart_service.get_cart_details(current_user.id, db)

@router.post("/items", response_model=CartDetails)
async def add_items_to_cart(
    cart_data: CartSync,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Add perfumes to the cart. Lines already in the cart have their quantities merged."""
    return await cart_service.add_items(current_user.id, cart_data.items, db)

@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Remove every item from the cart"""
    await cart_service.clear_cart(current_user.id, db)
