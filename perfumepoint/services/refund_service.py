import logging
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..core.config import Config
from ..enums import OrderStatus, PaymentStatus, RefundRequestStatus
from ..exceptions import BadRequestException, InternalServerErrorException, NotFoundException
from ..models import Order, RefundRequest, RefundRequestItem
from ..models.base import utcnow
from ..schemas.refund import RefundItemCreate, RefundItemResponse, RefundRequestResponse
from .perfume_service import PerfumeService


logger = logging.getLogger(__name__)


def order_discount_ratio(order: Order) -> float:
    """
    Share of the order's pre-discount value that discounts took off.

    Refunds spread this share evenly over every refunded unit, whichever
    discount applied to which line.
    """
    gross_amount = order.total_amount + order.discount_amount
    if gross_amount <= 0:
        return 0.0
    return order.discount_amount / gross_amount


class RefundService:
    def __init__(self, perfume_service: Optional[PerfumeService] = None, refund_window_days: Optional[int] = None):
        self.perfume_service = perfume_service or PerfumeService()
        self.refund_window_days = refund_window_days or Config.REFUND_WINDOW_DAYS

    async def validate_refund_eligibility(
        self,
        order_id: int,
        user_id: int,
        items: List[RefundItemCreate],
        db: AsyncSession
    ) -> Tuple[Order, float, List[RefundRequestItem]]:
        """
        Check that the user may get a refund for these items and price it.

        Returns:
            Tuple of the order, the total refund amount and the unsaved
            refund items.

        Raises:
            NotFoundException: If the order does not exist.
            BadRequestException: If any eligibility rule fails.
        """
        order = await db.get(Order, order_id)
        if not order:
            raise NotFoundException("Order not found")

        if order.customer_id != user_id:
            raise BadRequestException("Order does not belong to user")

        if order.status != OrderStatus.DELIVERED:
            raise BadRequestException("Order must be delivered to request refund")

        if order.payment_status != PaymentStatus.COMPLETED:
            raise BadRequestException("Order payment must be completed to request refund")

        if order.created_at < utcnow() - timedelta(days=self.refund_window_days):
            raise BadRequestException(f"Refund period ({self.refund_window_days} days) has expired")

        requested_lines = [(item.perfume_id, item.volume) for item in items]
        if len(set(requested_lines)) != len(requested_lines):
            raise BadRequestException("Each item can only appear once in a refund request")

        ratio = order_discount_ratio(order)
        refund_items = []
        total_refund_amount = 0.0

        for refund_item in items:
            if not order.find_item(refund_item.perfume_id):
                raise BadRequestException(f"Order item not found: {refund_item.perfume_id}")

            order_item = order.find_item(refund_item.perfume_id, refund_item.volume)
            if not order_item:
                raise BadRequestException("Refund volume must match ordered volume")

            if refund_item.quantity > order_item.quantity:
                raise BadRequestException("Refund quantity cannot exceed ordered quantity")

            refund_amount = round(order_item.unit_price * (1 - ratio) * refund_item.quantity, 2)
            refund_items.append(
                RefundRequestItem(
                    perfume=order_item.perfume,
                    volume=order_item.volume,
                    quantity=refund_item.quantity,
                    refund_amount=refund_amount,
                )
            )
            total_refund_amount += refund_amount

        return order, round(total_refund_amount, 2), refund_items

    async def create_refund_request(
        self,
        order_id: int,
        user_id: int,
        items: List[RefundItemCreate],
        db: AsyncSession
    ) -> RefundRequest:
        """Open a PENDING refund request for some items of a delivered order"""
        order, total_refund_amount, refund_items = await self.validate_refund_eligibility(
            order_id, user_id, items, db
        )

        # TODO: confirm whether a REJECTED request should keep blocking a new one for the same perfume
        query = (
            select(RefundRequest.id)
            .join(RefundRequest.items)
            .where(
                RefundRequest.order_id == order.id,
                RefundRequest.status.in_([RefundRequestStatus.PENDING, RefundRequestStatus.REJECTED]),
                RefundRequestItem.perfume_id.in_([item.perfume_id for item in items]),
            )
            .limit(1)
        )
        existing_request = (await db.execute(query)).first()
        if existing_request:
            raise BadRequestException("A refund request already exists for one or more items")

        refund_request = RefundRequest(
            user=order.customer,
            order=order,
            items=refund_items,
            total_refund_amount=total_refund_amount,
            status=RefundRequestStatus.PENDING,
            created_at=utcnow(),
        )
        db.add(refund_request)
        await db.commit()

        logger.info(
            "Refund request %s opened for order %s, amount %.2f",
            refund_request.id, order.id, total_refund_amount
        )
        return refund_request

    async def _get_refund_request(self, refund_request_id: int, db: AsyncSession) -> RefundRequest:
        refund_request = await db.get(RefundRequest, refund_request_id)
        if not refund_request:
            raise NotFoundException("Refund request not found")
        return refund_request

    async def approve_refund_request(self, refund_request_id: int, db: AsyncSession) -> RefundRequest:
        """
        Approve a pending request: restock the items and shrink the order.

        The request, the order and the stock counters change in a single
        transaction. A line refunded in full is removed; a partial refund
        lowers the line's quantity and total by exactly the refund amount.
        An order left without lines becomes REFUNDED.
        """
        refund_request = await self._get_refund_request(refund_request_id, db)

        if refund_request.status != RefundRequestStatus.PENDING:
            raise BadRequestException("Refund request is not in pending status")

        try:
            order = refund_request.order

            refund_request.status = RefundRequestStatus.APPROVED
            refund_request.processed_at = utcnow()

            for item in refund_request.items:
                order_item = order.find_item(item.perfume_id, item.volume)
                if not order_item:
                    raise BadRequestException(f"Order item not found: {item.perfume_id}")

                await self.perfume_service.increment_stock(item.perfume_id, item.volume, item.quantity, db)

                discount_share = order_item.unit_price * item.quantity - item.refund_amount
                if item.quantity >= order_item.quantity:
                    order.items.remove(order_item)
                else:
                    order_item.quantity -= item.quantity
                    order_item.total_price = round(order_item.total_price - item.refund_amount, 2)

                order.discount_amount = max(0.0, round(order.discount_amount - discount_share, 2))

            order.total_amount = round(sum(item.total_price for item in order.items), 2)

            if not order.items:
                order.status = OrderStatus.REFUNDED
                order.payment_status = PaymentStatus.REFUNDED
                order.discount_amount = 0.0

            await db.commit()

        except Exception as e:
            await db.rollback()

            if isinstance(e, (NotFoundException, BadRequestException)):
                raise

            logger.exception("Failed to approve refund request %s", refund_request_id)
            raise InternalServerErrorException("Failed to approve refund request")

        logger.info("Refund request %s approved, order %s total is now %.2f",
                    refund_request.id, order.id, order.total_amount)
        return refund_request

    async def reject_refund_request(self, refund_request_id: int, rejection_reason: str, db: AsyncSession) -> RefundRequest:
        refund_request = await self._get_refund_request(refund_request_id, db)

        if refund_request.status != RefundRequestStatus.PENDING:
            raise BadRequestException("Refund request is not in pending status, cannot be rejected")

        refund_request.status = RefundRequestStatus.REJECTED
        refund_request.rejection_reason = rejection_reason
        refund_request.processed_at = utcnow()
        await db.commit()

        logger.info("Refund request %s rejected", refund_request.id)
        return refund_request

    async def get_user_refund_requests(self, user_id: int, db: AsyncSession) -> List[RefundRequest]:
        query = (
            select(RefundRequest)
            .where(RefundRequest.user_id == user_id)
            .order_by(RefundRequest.created_at.desc(), RefundRequest.id.desc())
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get_all_refund_requests(self, db: AsyncSession) -> List[RefundRequest]:
        query = select(RefundRequest).order_by(RefundRequest.created_at.desc(), RefundRequest.id.desc())
        result = await db.execute(query)
        return result.scalars().all()

    def to_response(self, refund_request: RefundRequest) -> RefundRequestResponse:
        order = refund_request.order
        user = refund_request.user
        return RefundRequestResponse(
            refund_request_id=refund_request.id,
            order_id=refund_request.order_id,
            order_date=order.created_at,
            invoice_number=order.invoice_number,
            user_id=refund_request.user_id,
            user_email=user.email if user else None,
            user_name=user.full_name if user else None,
            items=[
                RefundItemResponse(
                    perfume_id=item.perfume_id,
                    perfume_name=item.perfume.name if item.perfume else None,
                    brand=item.perfume.brand if item.perfume else None,
                    volume=item.volume,
                    quantity=item.quantity,
                    refund_amount=item.refund_amount,
                )
                for item in refund_request.items
            ],
            total_refund_amount=refund_request.total_refund_amount,
            status=refund_request.status,
            rejection_reason=refund_request.rejection_reason,
            created_at=refund_request.created_at,
            processed_at=refund_request.processed_at,
        )
