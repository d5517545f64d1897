from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import Perfume, PerfumeVariant
from ..exceptions import NotFoundException


class PerfumeService:
    """
    Catalog lookups and stock counters. Stock is only ever changed with
    single UPDATE statements scoped to (perfume_id, volume).
    """

    async def get_perfume_by_id(self, perfume_id: int, db: AsyncSession) -> Perfume:
        """Loads the perfume with fresh variant rows, stock included"""
        query = (
            select(Perfume)
            .where(Perfume.id == perfume_id)
            .options(selectinload(Perfume.variants))
            .execution_options(populate_existing=True)
        )
        perfume = (await db.execute(query)).scalars().first()
        if not perfume:
            raise NotFoundException(f"Perfume with ID {perfume_id} not found")
        return perfume

    async def decrement_stock(self, perfume_id: int, volume: int, quantity: int, db: AsyncSession) -> bool:
        """
        Takes `quantity` units out of stock only if that many are left.

        Returns:
            bool: False when a concurrent order already consumed the stock.
        """
        result = await db.execute(
            update(PerfumeVariant)
            .where(
                PerfumeVariant.perfume_id == perfume_id,
                PerfumeVariant.volume == volume,
                PerfumeVariant.stock >= quantity,
            )
            .values(stock=PerfumeVariant.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        await db.execute(
            update(Perfume)
            .where(Perfume.id == perfume_id)
            .values(total_sales=Perfume.total_sales + quantity)
            .execution_options(synchronize_session=False)
        )
        return True

    async def increment_stock(self, perfume_id: int, volume: int, quantity: int, db: AsyncSession) -> None:
        """Puts refunded or canceled units back on the shelf"""
        await db.execute(
            update(PerfumeVariant)
            .where(
                PerfumeVariant.perfume_id == perfume_id,
                PerfumeVariant.volume == volume,
            )
            .values(stock=PerfumeVariant.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            update(Perfume)
            .where(Perfume.id == perfume_id)
            .values(total_sales=Perfume.total_sales - quantity)
            .execution_options(synchronize_session=False)
        )
