from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import and_, delete
from typing import List

from ..models import Cart, CartItem, Perfume
from ..schemas.cart import CartDetails, CartItemCreate, CartItemDetail
from ..exceptions import NotFoundException, BadRequestException


class CartService:
    async def get_or_create_cart(self, user_id: int, db: AsyncSession) -> Cart:
        """Get a user's cart or create one if it doesn't exist"""
        query = select(Cart).where(Cart.customer_id == user_id)
        result = await db.execute(query)
        cart = result.scalars().first()

        if not cart:
            cart = Cart(customer_id=user_id)
            db.add(cart)
            await db.commit()
            await db.refresh(cart)

        return cart

    async def _get_cart_items(self, cart_id: int, db: AsyncSession) -> List[CartItem]:
        query = (
            select(CartItem)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get_cart_details(self, user_id: int, db: AsyncSession) -> CartDetails:
        """
        Snapshot of the cart: one line per (perfume, volume) with the list
        price of the variant.
        """
        cart = await self.get_or_create_cart(user_id, db)
        cart_items = await self._get_cart_items(cart.id, db)

        items = []
        total_price = 0.0
        for item in cart_items:
            perfume = item.perfume
            variant = perfume.get_variant(item.volume)
            if not variant:
                raise BadRequestException(f"Invalid volume for item {perfume.name}")

            total_price += variant.price * item.quantity
            items.append(
                CartItemDetail(
                    perfume_id=perfume.id,
                    perfume_name=perfume.name,
                    brand=perfume.brand,
                    volume=item.volume,
                    quantity=item.quantity,
                    base_price=variant.price,
                )
            )

        return CartDetails(id=cart.id, items=items, total_price=round(total_price, 2))

    async def add_items(self, user_id: int, items: List[CartItemCreate], db: AsyncSession) -> CartDetails:
        """Add perfumes to the cart, merging quantities of lines already there"""
        cart = await self.get_or_create_cart(user_id, db)

        for item_data in items:
            perfume = await db.get(Perfume, item_data.perfume_id)
            if not perfume:
                raise NotFoundException(f"Perfume with ID {item_data.perfume_id} not found")

            if not perfume.is_active:
                raise BadRequestException("This perfume is not available")

            query = select(CartItem).where(
                and_(
                    CartItem.cart_id == cart.id,
                    CartItem.perfume_id == item_data.perfume_id,
                    CartItem.volume == item_data.volume,
                )
            )
            result = await db.execute(query)
            existing_item = result.scalars().first()
            quantity = item_data.quantity + (existing_item.quantity if existing_item else 0)

            variant = perfume.get_variant(item_data.volume)
            if not variant or not variant.is_active or variant.stock < quantity:
                raise BadRequestException("Invalid perfume id, volume, or insufficient stock")

            if existing_item:
                existing_item.quantity = quantity
            else:
                db.add(
                    CartItem(
                        cart_id=cart.id,
                        perfume_id=item_data.perfume_id,
                        volume=item_data.volume,
                        quantity=item_data.quantity,
                    )
                )

        await db.commit()
        return await self.get_cart_details(user_id, db)

    async def clear_cart(self, user_id: int, db: AsyncSession, commit: bool = True) -> None:
        """
        Remove every item from the user's cart.

        With commit=False the delete joins the caller's transaction; the order
        builder relies on this to clear the cart atomically with the order.
        """
        query = select(Cart).where(Cart.customer_id == user_id)
        result = await db.execute(query)
        cart = result.scalars().first()
        if not cart:
            return

        await db.execute(delete(CartItem).where(CartItem.cart_id == cart.id))
        if commit:
            await db.commit()
