import logging
from decimal import Decimal, ROUND_DOWN
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Discount, Perfume, discount_perfumes
from ..models.base import utcnow
from ..schemas.discount import DiscountCreate, DiscountResponse, DiscountUpdate, DiscountedPerfume
from ..exceptions import BadRequestException, ForbiddenException, InternalServerErrorException, NotFoundException


logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def apply_discount_rate(price: float, rate: float) -> float:
    """
    Applies a percentage discount and truncates to whole cents.

    The result is never rounded up, so 100.005 at 10% gives 90.00 and not 90.01.
    """
    discounted = Decimal(str(price)) * (Decimal(100) - Decimal(str(rate))) / Decimal(100)
    return float(discounted.quantize(CENT, rounding=ROUND_DOWN))


class DiscountService:

    async def get_active_discount_for_perfume(self, perfume_id: int, db: AsyncSession) -> Optional[Discount]:
        """
        Returns the discount currently covering the perfume, if any.

        A discount is current when it is active and now falls inside
        [start_date, end_date].
        """
        now = utcnow()
        query = (
            select(Discount)
            .join(discount_perfumes, discount_perfumes.c.discount_id == Discount.id)
            .where(
                discount_perfumes.c.perfume_id == perfume_id,
                Discount.is_active.is_(True),
                Discount.start_date <= now,
                Discount.end_date >= now,
            )
            .order_by(Discount.id)
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalars().first()

    async def resolve_price(
        self,
        base_price: float,
        perfume_id: int,
        db: AsyncSession
    ) -> Tuple[float, Optional[Discount]]:
        """Effective unit price together with the discount that produced it"""
        discount = await self.get_active_discount_for_perfume(perfume_id, db)
        if not discount:
            return base_price, None
        return apply_discount_rate(base_price, discount.rate), discount

    async def calculate_discounted_price(self, base_price: float, perfume_id: int, db: AsyncSession) -> float:
        price, _ = await self.resolve_price(base_price, perfume_id, db)
        return price

    async def _get_perfumes(
        self,
        perfume_ids: List[int],
        db: AsyncSession,
        discount_id: Optional[int] = None
    ) -> List[Perfume]:
        """
        Loads the perfumes a discount should cover.

        Raises NotFoundException for an unknown perfume and BadRequestException
        when a perfume is already covered by a discount other than discount_id.
        """
        perfume_ids = list(dict.fromkeys(perfume_ids))
        perfumes = []
        for perfume_id in perfume_ids:
            perfume = await db.get(Perfume, perfume_id)
            if not perfume:
                raise NotFoundException(f"Perfume with ID {perfume_id} not found")
            perfumes.append(perfume)

        # A perfume can only belong to one discount at a time
        query = select(discount_perfumes.c.perfume_id).where(discount_perfumes.c.perfume_id.in_(perfume_ids))
        if discount_id is not None:
            query = query.where(discount_perfumes.c.discount_id != discount_id)
        covered = await db.execute(query)
        if covered.first():
            raise BadRequestException("One or more perfumes are already in a discount")

        return perfumes

    async def _ensure_name_is_free(self, name: str, db: AsyncSession) -> None:
        existing = await db.execute(select(Discount).where(Discount.name == name))
        if existing.scalars().first():
            raise BadRequestException("Discount with this name already exists")

    async def _get_own_discount(self, user_id: int, discount_id: int, action: str, db: AsyncSession) -> Discount:
        discount = await db.get(Discount, discount_id)
        if not discount:
            raise NotFoundException("Discount not found")

        if discount.created_by_id != user_id:
            raise ForbiddenException(f"Not authorized to {action} this discount")

        return discount

    async def create_discount(self, user_id: int, discount_data: DiscountCreate, db: AsyncSession) -> Discount:
        """Create a discount campaign over a set of perfumes"""
        try:
            await self._ensure_name_is_free(discount_data.name, db)
            perfumes = await self._get_perfumes(discount_data.perfume_ids, db)

            discount = Discount(
                name=discount_data.name,
                rate=discount_data.rate,
                start_date=discount_data.start_date,
                end_date=discount_data.end_date,
                is_active=discount_data.is_active,
                created_by_id=user_id,
                perfumes=perfumes,
            )
            db.add(discount)
            await db.commit()
            await db.refresh(discount)

            logger.info("Discount %s created with rate %s%%", discount.id, discount.rate)
            return discount

        except Exception as e:
            await db.rollback()

            if isinstance(e, (NotFoundException, BadRequestException)):
                raise

            logger.exception("Failed to create discount")
            raise InternalServerErrorException("Failed to create discount")

    async def update_discount(
        self,
        user_id: int,
        discount_id: int,
        discount_data: DiscountUpdate,
        db: AsyncSession
    ) -> Discount:
        """
        Change a discount. Only its creator may do so.

        New perfumes go through the same checks as on creation, and the
        resulting date range must still end after it starts.
        """
        discount = await self._get_own_discount(user_id, discount_id, "update", db)
        changes = discount_data.model_dump(exclude_unset=True, exclude_none=True)

        try:
            if "name" in changes and changes["name"] != discount.name:
                await self._ensure_name_is_free(changes["name"], db)

            start_date = changes.get("start_date", discount.start_date)
            end_date = changes.get("end_date", discount.end_date)
            if end_date <= start_date:
                raise BadRequestException("end_date must be after start_date")

            if "perfume_ids" in changes:
                discount.perfumes = await self._get_perfumes(changes.pop("perfume_ids"), db, discount.id)

            for field, value in changes.items():
                setattr(discount, field, value)

            await db.commit()
            await db.refresh(discount)

        except Exception as e:
            await db.rollback()

            if isinstance(e, (NotFoundException, BadRequestException)):
                raise

            logger.exception("Failed to update discount %s", discount_id)
            raise InternalServerErrorException("Failed to update discount")

        logger.info("Discount %s updated", discount.id)
        return discount

    async def get_all_discounts(self, db: AsyncSession) -> List[Discount]:
        result = await db.execute(select(Discount).order_by(Discount.created_at.desc(), Discount.id.desc()))
        return result.scalars().all()

    async def delete_discount(self, user_id: int, discount_id: int, db: AsyncSession) -> None:
        discount = await self._get_own_discount(user_id, discount_id, "delete", db)

        await db.delete(discount)
        await db.commit()
        logger.info("Discount %s deleted", discount_id)

    def to_response(self, discount: Discount) -> DiscountResponse:
        perfumes = []
        for perfume in discount.perfumes:
            if not perfume.variants:
                continue
            original_price = perfume.variants[0].price
            perfumes.append(
                DiscountedPerfume(
                    id=perfume.id,
                    name=perfume.name,
                    brand=perfume.brand,
                    original_price=original_price,
                    discounted_price=apply_discount_rate(original_price, discount.rate),
                )
            )

        return DiscountResponse(
            id=discount.id,
            name=discount.name,
            rate=discount.rate,
            start_date=discount.start_date,
            end_date=discount.end_date,
            is_active=discount.is_active,
            created_by_id=discount.created_by_id,
            perfumes=perfumes,
        )
