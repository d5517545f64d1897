import pytest
from sqlalchemy import func, select, update

from perfumepoint.enums import OrderStatus, PaymentStatus
from perfumepoint.exceptions import BadRequestException, NotFoundException
from perfumepoint.models import CartItem, Order, PerfumeVariant
from perfumepoint.schemas.order import OrderCreate
from perfumepoint.services.order_service import OrderService
from perfumepoint.utils.payment import card_field_matches

from conftest import (
    ORDER_DATA,
    FakeEmailService,
    FakeInvoiceService,
    add_to_cart,
    create_discount,
    create_perfume,
    place_order,
    stock_of,
)


async def count_orders(db):
    return await db.scalar(select(func.count(Order.id)))


class TestCreateOrder:
    async def test_creates_order_from_cart(self, db, order_service, customer, perfume):
        await add_to_cart(db, customer, perfume, volume=50, quantity=2)

        order = await place_order(db, order_service, customer)

        assert order.status == OrderStatus.PROCESSING
        assert order.payment_status == PaymentStatus.PENDING
        assert order.total_amount == 200.0
        assert order.discount_amount == 0.0
        assert order.applied_discount_ids == []
        assert len(order.items) == 1
        assert order.items[0].unit_price == 100.0
        assert order.items[0].discounted_unit_price == 100.0
        assert order.items[0].total_price == 200.0

    async def test_summary_carries_invoice_and_card_tail(self, db, order_service, customer, perfume):
        await add_to_cart(db, customer, perfume, volume=100, quantity=1)

        summary = await order_service.create_order(customer.id, OrderCreate(**ORDER_DATA), db)

        assert summary.invoice_number == OrderService.invoice_number_for(summary.order_id)
        assert summary.card_last_four_digits == "1111"
        assert summary.items[0].perfume_name == "Bleu de Chanel"
        assert summary.total_amount == 150.0

    async def test_total_is_sum_of_discounted_lines(self, db, order_service, customer, perfume):
        other = await create_perfume(db, "Sauvage", "Dior", variants=[(60, 89.99, 4)])
        discount = await create_discount(db, [perfume], rate=20)
        await add_to_cart(db, customer, perfume, volume=50, quantity=2)
        await add_to_cart(db, customer, other, volume=60, quantity=1)

        order = await place_order(db, order_service, customer)

        assert order.total_amount == pytest.approx(sum(item.total_price for item in order.items))
        assert order.total_amount == pytest.approx(249.99)
        assert order.discount_amount == pytest.approx(40.0)
        assert order.applied_discount_ids == [discount.id]

        discounted_line = order.find_item(perfume.id, 50)
        assert discounted_line.unit_price == 100.0
        assert discounted_line.discounted_unit_price == 80.0

    async def test_decrements_stock_and_clears_cart(self, db, order_service, customer, perfume):
        await add_to_cart(db, customer, perfume, volume=50, quantity=2)

        await place_order(db, order_service, customer)

        assert await stock_of(db, perfume.id, 50) == 8
        assert await stock_of(db, perfume.id, 100) == 5
        assert await db.scalar(select(func.count(CartItem.id))) == 0

    async def test_card_fields_are_hashed(self, db, order_service, customer, perfume):
        await add_to_cart(db, customer, perfume, volume=50, quantity=1)

        order = await place_order(db, order_service, customer)

        assert order.card_last_four == "1111"
        assert order.card_number_hash != ORDER_DATA["card_number"]
        assert card_field_matches(ORDER_DATA["card_number"], order.card_number_hash)
        assert card_field_matches(ORDER_DATA["cvv"], order.card_cvv_hash)

    async def test_sends_invoice_to_purchaser(self, db, order_service, invoice_service, email_service, customer, perfume):
        await add_to_cart(db, customer, perfume, volume=50, quantity=1)

        order = await place_order(db, order_service, customer)

        assert invoice_service.rendered == [order.id]
        assert email_service.sent[0]["recipient_email"] == "jane@example.com"
        assert email_service.sent[0]["recipient_name"] == "Jane Doe"

    async def test_empty_cart_is_rejected(self, db, order_service, email_service, customer, perfume):
        with pytest.raises(BadRequestException) as exc:
            await order_service.create_order(customer.id, OrderCreate(**ORDER_DATA), db)

        assert exc.value.detail == "No items to order, the shopping cart is empty"
        assert await count_orders(db) == 0
        assert await stock_of(db, perfume.id, 50) == 10
        assert email_service.sent == []

    async def test_insufficient_stock_aborts_whole_order(self, db, order_service, customer, perfume):
        other = await create_perfume(db, "Sauvage", "Dior", variants=[(60, 90.0, 4)])
        await add_to_cart(db, customer, other, volume=60, quantity=1)
        await add_to_cart(db, customer, perfume, volume=50, quantity=3)
        other_id, customer_id = other.id, customer.id

        # someone else bought most of the stock after it went into the cart
        await db.execute(
            update(PerfumeVariant)
            .where(PerfumeVariant.perfume_id == perfume.id, PerfumeVariant.volume == 50)
            .values(stock=2)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        with pytest.raises(BadRequestException) as exc:
            await order_service.create_order(customer_id, OrderCreate(**ORDER_DATA), db)

        assert exc.value.detail == "Invalid volume or insufficient stock for perfume: Bleu de Chanel"
        assert await count_orders(db) == 0
        assert await stock_of(db, other_id, 60) == 4
        assert await db.scalar(select(func.count(CartItem.id))) == 2

    async def test_email_failure_keeps_the_order(self, db, customer, perfume):
        service = OrderService(invoice_service=FakeInvoiceService(), email_service=FakeEmailService(fail=True))
        await add_to_cart(db, customer, perfume, volume=50, quantity=1)

        order = await place_order(db, service, customer)

        assert order.id is not None
        assert await count_orders(db) == 1


class TestOrderQueries:
    async def test_user_orders_are_newest_first(self, db, order_service, customer, perfume):
        await add_to_cart(db, customer, perfume, volume=50, quantity=1)
        first = await place_order(db, order_service, customer)
        await add_to_cart(db, customer, perfume, volume=100, quantity=1)
        second = await place_order(db, order_service, customer)

        orders = await order_service.get_user_orders(customer.id, db)

        assert [order.id for order in orders] == [second.id, first.id]

    async def test_other_users_order_is_not_found(self, db, order_service, customer, manager, perfume):
        await add_to_cart(db, customer, perfume, volume=50, quantity=1)
        order = await place_order(db, order_service, customer)

        with pytest.raises(NotFoundException):
            await order_service.get_order_by_id(order.id, manager.id, db)

    async def test_orders_of_perfume(self, db, order_service, customer, perfume):
        other = await create_perfume(db, "Sauvage", "Dior", variants=[(60, 90.0, 4)])
        await add_to_cart(db, customer, perfume, volume=50, quantity=1)
        with_perfume = await place_order(db, order_service, customer)
        await add_to_cart(db, customer, other, volume=60, quantity=1)
        await place_order(db, order_service, customer)

        orders = await order_service.get_orders_of_perfume(perfume.id, db)

        assert [order.id for order in orders] == [with_perfume.id]

    async def test_orders_of_unknown_perfume(self, db, order_service):
        with pytest.raises(NotFoundException):
            await order_service.get_orders_of_perfume(999, db)
