import pytest

from perfumepoint.enums import OrderStatus, PaymentStatus
from perfumepoint.exceptions import BadRequestException, NotFoundException

from conftest import add_to_cart, create_user, mark_delivered, place_order, stock_of


@pytest.fixture
async def order(db, order_service, customer, perfume):
    await add_to_cart(db, customer, perfume, volume=50, quantity=2)
    return await place_order(db, order_service, customer)


class TestUpdateOrderStatus:
    async def test_shipping_completes_pending_payment(self, db, order_service, order):
        await order_service.update_order_status(order.id, OrderStatus.IN_TRANSIT, db)

        assert order.status == OrderStatus.IN_TRANSIT
        assert order.payment_status == PaymentStatus.COMPLETED

    async def test_in_transit_to_delivered(self, db, order_service, order):
        await order_service.update_order_status(order.id, OrderStatus.IN_TRANSIT, db)
        await order_service.update_order_status(order.id, OrderStatus.DELIVERED, db)

        assert order.status == OrderStatus.DELIVERED

    @pytest.mark.parametrize("target", [OrderStatus.DELIVERED, OrderStatus.REFUNDED, OrderStatus.PROCESSING])
    async def test_illegal_moves_from_processing(self, db, order_service, order, target):
        with pytest.raises(BadRequestException):
            await order_service.update_order_status(order.id, target, db)

        assert order.status == OrderStatus.PROCESSING
        assert order.payment_status == PaymentStatus.PENDING

    async def test_delivered_is_final(self, db, order_service, order):
        await mark_delivered(db, order)

        with pytest.raises(BadRequestException) as exc:
            await order_service.update_order_status(order.id, OrderStatus.IN_TRANSIT, db)

        assert exc.value.detail == "Cannot change order status from delivered to in-transit"

    async def test_unknown_order(self, db, order_service):
        with pytest.raises(NotFoundException):
            await order_service.update_order_status(999, OrderStatus.IN_TRANSIT, db)


class TestCancelOrder:
    async def test_cancel_restocks_items(self, db, order_service, order, customer, perfume):
        assert await stock_of(db, perfume.id, 50) == 8

        await order_service.cancel_order(order.id, customer.id, db)

        assert order.status == OrderStatus.CANCELED
        assert order.payment_status == PaymentStatus.FAILED
        assert await stock_of(db, perfume.id, 50) == 10

    async def test_shipped_order_cannot_be_canceled(self, db, order_service, order, customer, perfume):
        await order_service.update_order_status(order.id, OrderStatus.IN_TRANSIT, db)

        with pytest.raises(BadRequestException) as exc:
            await order_service.cancel_order(order.id, customer.id, db)

        assert exc.value.detail == "Only orders that are still processing can be canceled"
        assert await stock_of(db, perfume.id, 50) == 8

    async def test_customer_cannot_cancel_someone_elses_order(self, db, order_service, order):
        stranger = await create_user(db, "someone@example.com")

        with pytest.raises(NotFoundException):
            await order_service.cancel_order(order.id, stranger.id, db)

        assert order.status == OrderStatus.PROCESSING

    async def test_canceled_order_cannot_be_shipped(self, db, order_service, order, customer):
        await order_service.cancel_order(order.id, customer.id, db)

        with pytest.raises(BadRequestException):
            await order_service.update_order_status(order.id, OrderStatus.IN_TRANSIT, db)
