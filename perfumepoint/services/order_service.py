import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..core.config import Config
from ..enums import ORDER_STATUS_TRANSITIONS, OrderStatus, PaymentStatus
from ..exceptions import BadRequestException, InternalServerErrorException, NotFoundException
from ..models import Order, OrderItem, User
from ..models.base import utcnow
from ..schemas.cart import CartItemDetail
from ..schemas.order import OrderCreate, OrderItemSummary, OrderResponse, OrderSummary
from ..utils.payment import mask_card_details
from .cart_service import CartService
from .discount_service import DiscountService
from .email_service import EmailService
from .invoice_service import InvoiceService
from .perfume_service import PerfumeService


logger = logging.getLogger(__name__)

# Invoice numbers are derived from the order id so they are numeric and unique
INVOICE_NUMBER_BASE = 100000000


class OrderService:
    def __init__(
        self,
        cart_service: Optional[CartService] = None,
        perfume_service: Optional[PerfumeService] = None,
        discount_service: Optional[DiscountService] = None,
        invoice_service: Optional[InvoiceService] = None,
        email_service: Optional[EmailService] = None,
    ):
        self.cart_service = cart_service or CartService()
        self.perfume_service = perfume_service or PerfumeService()
        self.discount_service = discount_service or DiscountService()
        self.invoice_service = invoice_service or InvoiceService()
        self.email_service = email_service or EmailService()

    @staticmethod
    def invoice_number_for(order_id: int) -> str:
        return str(INVOICE_NUMBER_BASE + order_id)

    async def _price_cart_items(self, cart_items: List[CartItemDetail], db: AsyncSession) -> Dict[str, Any]:
        """
        Check every cart line against the live catalog and price it.

        Raises before anything is written, so a bad line never leaves a
        partial order behind.
        """
        lines = []
        applied_discount_ids = []
        total_amount = 0.0
        discount_amount = 0.0

        for item in cart_items:
            perfume = await self.perfume_service.get_perfume_by_id(item.perfume_id, db)
            if not perfume.is_active:
                raise BadRequestException(f"Perfume is not available: {perfume.name}")

            variant = next(
                (
                    v for v in perfume.variants
                    if v.volume == item.volume and v.is_active and v.stock >= item.quantity
                ),
                None
            )
            if not variant:
                raise BadRequestException(f"Invalid volume or insufficient stock for perfume: {perfume.name}")

            discounted_price, discount = await self.discount_service.resolve_price(variant.price, perfume.id, db)
            line_total = round(discounted_price * item.quantity, 2)

            if discount and discount.id not in applied_discount_ids:
                applied_discount_ids.append(discount.id)

            total_amount += line_total
            discount_amount += (variant.price - discounted_price) * item.quantity
            lines.append({
                "perfume": perfume,
                "volume": item.volume,
                "quantity": item.quantity,
                "unit_price": variant.price,
                "discounted_unit_price": discounted_price,
                "total_price": line_total,
            })

        return {
            "lines": lines,
            "applied_discount_ids": applied_discount_ids,
            "total_amount": round(total_amount, 2),
            "discount_amount": round(discount_amount, 2),
        }

    async def create_order(
        self,
        user_id: int,
        order_data: OrderCreate,
        db: AsyncSession,
        background_tasks: Optional[BackgroundTasks] = None
    ) -> OrderSummary:
        """
        Create an order from the user's cart.

        The order row, the stock decrements and the cart clear share one
        transaction. The invoice email goes out only after the commit and
        its failure never touches the order.
        """
        cart = await self.cart_service.get_cart_details(user_id, db)
        if not cart.items:
            raise BadRequestException("No items to order, the shopping cart is empty")

        try:
            priced = await self._price_cart_items(cart.items, db)

            user = await db.get(User, user_id)
            if not user:
                raise NotFoundException(f"User with ID {user_id} not found")

            card_details = await asyncio.to_thread(
                mask_card_details,
                order_data.card_number,
                order_data.card_holder,
                order_data.expiry_month,
                order_data.expiry_year,
                order_data.cvv,
            )

            order = Order(
                customer=user,
                items=[
                    OrderItem(
                        perfume=line["perfume"],
                        volume=line["volume"],
                        quantity=line["quantity"],
                        unit_price=line["unit_price"],
                        discounted_unit_price=line["discounted_unit_price"],
                        total_price=line["total_price"],
                    )
                    for line in priced["lines"]
                ],
                total_amount=priced["total_amount"],
                discount_amount=priced["discount_amount"],
                applied_discount_ids=priced["applied_discount_ids"],
                status=OrderStatus.PROCESSING,
                payment_status=PaymentStatus.PENDING,
                shipping_address=order_data.shipping_address,
                tax_id=order_data.tax_id,
                payment_id=order_data.payment_id,
                created_at=utcnow(),
                **card_details,
            )
            db.add(order)
            await db.flush()

            order.invoice_number = self.invoice_number_for(order.id)
            order.invoice_url = f"{Config.INVOICE_BASE_URL}/{order.invoice_number}.pdf"

            for line in priced["lines"]:
                reserved = await self.perfume_service.decrement_stock(
                    line["perfume"].id, line["volume"], line["quantity"], db
                )
                if not reserved:
                    raise BadRequestException(f"Insufficient stock for perfume: {line['perfume'].name}")

            await self.cart_service.clear_cart(user_id, db, commit=False)
            await db.commit()

        except Exception as e:
            await db.rollback()

            if isinstance(e, (NotFoundException, BadRequestException)):
                raise

            logger.exception("Order creation failed for user %s", user_id)
            raise InternalServerErrorException("Failed to create order")

        logger.info("Order %s created for user %s, total %.2f", order.id, user_id, order.total_amount)

        if background_tasks is not None:
            background_tasks.add_task(self.send_invoice, order, user, order_data.card_holder)
        else:
            await self.send_invoice(order, user, order_data.card_holder)

        return OrderSummary(
            order_id=order.id,
            invoice_number=order.invoice_number,
            total_amount=order.total_amount,
            discount_amount=order.discount_amount,
            items=[self._item_summary(item) for item in order.items],
            shipping_address=order.shipping_address,
            card_last_four_digits=order.card_last_four,
        )

    async def send_invoice(self, order: Order, user: User, recipient_name: str) -> None:
        """Render and email the invoice. Failures are logged, never raised."""
        try:
            pdf_bytes = await self.invoice_service.generate_invoice_pdf(order, user)
            sent = await self.email_service.send_invoice_email(order, pdf_bytes, recipient_name, user.email)
            if not sent:
                logger.warning("Invoice email for order %s was not delivered", order.id)
        except Exception:
            logger.exception("Failed to send invoice for order %s", order.id)

    def _item_summary(self, item: OrderItem) -> OrderItemSummary:
        perfume = item.perfume
        return OrderItemSummary(
            perfume_id=item.perfume_id,
            perfume_name=perfume.name if perfume else "",
            brand=perfume.brand if perfume else None,
            volume=item.volume,
            quantity=item.quantity,
            price=item.unit_price,
            discounted_price=item.discounted_unit_price,
            total_price=item.total_price,
        )

    def to_response(self, order: Order) -> OrderResponse:
        customer = order.customer
        return OrderResponse(
            order_id=order.id,
            user_id=order.customer_id,
            user_email=customer.email if customer else None,
            user_name=customer.full_name if customer else None,
            items=[self._item_summary(item) for item in order.items],
            total_amount=order.total_amount,
            discount_amount=order.discount_amount,
            applied_discount_ids=order.applied_discount_ids or [],
            status=order.status,
            payment_status=order.payment_status,
            shipping_address=order.shipping_address,
            payment_id=order.payment_id,
            invoice_number=order.invoice_number,
            invoice_url=order.invoice_url,
            card_last_four_digits=order.card_last_four,
            created_at=order.created_at,
        )

    async def get_order_by_id(self, order_id: int, user_id: Optional[int], db: AsyncSession) -> Order:
        """
        Get order by ID
        If user_id is provided, ensure the order belongs to that user
        """
        query = select(Order).where(Order.id == order_id)

        if user_id is not None:
            query = query.where(Order.customer_id == user_id)

        result = await db.execute(query)
        order = result.scalars().first()

        if not order:
            raise NotFoundException(f"Order with ID {order_id} not found")

        return order

    async def get_user_orders(self, user_id: int, db: AsyncSession) -> List[Order]:
        """Get all orders for a specific user, newest first"""
        query = (
            select(Order)
            .where(Order.customer_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get_orders_of_perfume(self, perfume_id: int, db: AsyncSession) -> List[Order]:
        """Every order containing the perfume, for managers"""
        await self.perfume_service.get_perfume_by_id(perfume_id, db)

        query = (
            select(Order)
            .where(Order.items.any(OrderItem.perfume_id == perfume_id))
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get_all_orders(self, db: AsyncSession) -> List[Order]:
        query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
        result = await db.execute(query)
        return result.scalars().all()

    async def update_order_status(self, order_id: int, status: OrderStatus, db: AsyncSession) -> Order:
        """
        Manually move an order one step forward.

        Shipping an order implies its payment went through, so a pending
        payment is completed on processing -> in-transit.
        """
        order = await self.get_order_by_id(order_id, None, db)

        if status not in ORDER_STATUS_TRANSITIONS[order.status]:
            raise BadRequestException(
                f"Cannot change order status from {order.status.value} to {status.value}"
            )

        previous_status = order.status
        order.status = status
        if status == OrderStatus.IN_TRANSIT and order.payment_status == PaymentStatus.PENDING:
            order.payment_status = PaymentStatus.COMPLETED

        await db.commit()
        logger.info("Order %s status updated: %s -> %s", order.id, previous_status.value, status.value)
        return order

    async def cancel_order(self, order_id: int, user_id: Optional[int], db: AsyncSession) -> Order:
        """
        Cancel an order that is still processing and put its items back in stock.

        If user_id is provided, only the owner may cancel.
        """
        order = await self.get_order_by_id(order_id, user_id, db)

        if order.status != OrderStatus.PROCESSING:
            raise BadRequestException("Only orders that are still processing can be canceled")

        try:
            for item in order.items:
                await self.perfume_service.increment_stock(item.perfume_id, item.volume, item.quantity, db)

            order.status = OrderStatus.CANCELED
            if order.payment_status == PaymentStatus.PENDING:
                order.payment_status = PaymentStatus.FAILED

            await db.commit()

        except Exception:
            await db.rollback()
            logger.exception("Failed to cancel order %s", order_id)
            raise InternalServerErrorException("Failed to cancel order")

        logger.info("Order %s canceled", order.id)
        return order
