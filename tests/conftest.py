import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DOMAIN"] = "localhost"
os.environ["SUPPRESS_SEND"] = "true"
os.environ["CARD_HASH_ROUNDS"] = "4"
os.environ["ORDER_SIMULATOR_ENABLED"] = "false"

from datetime import timedelta

import jwt
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from perfumepoint.core.config import Config
from perfumepoint.db.base import Base
from perfumepoint.enums import OrderStatus, PaymentStatus, UserRole
from perfumepoint.models import Discount, Order, Perfume, PerfumeVariant, User
from perfumepoint.models.base import utcnow
from perfumepoint.schemas.cart import CartItemCreate
from perfumepoint.schemas.order import OrderCreate
from perfumepoint.services.cart_service import CartService
from perfumepoint.services.order_service import OrderService
from perfumepoint.services.refund_service import RefundService


ORDER_DATA = {
    "shipping_address": "Bagdat Cd. 10, Kadikoy, Istanbul",
    "tax_id": "1234567890",
    "payment_id": "pay_0001",
    "card_number": "4111111111111111",
    "card_holder": "Jane Doe",
    "expiry_month": "08",
    "expiry_year": "2030",
    "cvv": "123",
}


class FakeInvoiceService:
    def __init__(self):
        self.rendered = []

    async def generate_invoice_pdf(self, order, user):
        self.rendered.append(order.id)
        return b"%PDF-1.4 fake invoice"


class FakeEmailService:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_invoice_email(self, order, pdf_bytes, recipient_name, recipient_email):
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        self.sent.append(
            {
                "order_id": order.id,
                "recipient_name": recipient_name,
                "recipient_email": recipient_email,
                "pdf": pdf_bytes,
            }
        )
        return True


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def invoice_service():
    return FakeInvoiceService()


@pytest.fixture
def email_service():
    return FakeEmailService()


@pytest.fixture
def order_service(invoice_service, email_service):
    return OrderService(invoice_service=invoice_service, email_service=email_service)


@pytest.fixture
def refund_service():
    return RefundService()


@pytest.fixture
async def customer(db):
    return await create_user(db, "jane@example.com")


@pytest.fixture
async def manager(db):
    return await create_user(db, "sales@perfumepoint.com", role=UserRole.SALES_MANAGER)


@pytest.fixture
async def perfume(db):
    return await create_perfume(db, "Bleu de Chanel", "Chanel", variants=[(50, 100.0, 10), (100, 150.0, 5)])


async def create_user(db, email, role=UserRole.CUSTOMER, first_name="Jane", last_name="Doe"):
    user = User(email=email, first_name=first_name, last_name=last_name, role=role)
    db.add(user)
    await db.commit()
    return user


async def create_perfume(db, name, brand, variants, is_active=True):
    """variants is a list of (volume, price, stock)"""
    perfume = Perfume(
        name=name,
        brand=brand,
        is_active=is_active,
        variants=[
            PerfumeVariant(volume=volume, price=price, stock=stock)
            for volume, price, stock in variants
        ],
    )
    db.add(perfume)
    await db.commit()
    return perfume


async def create_discount(db, perfumes, rate, name="Summer Sale", days_left=10):
    now = utcnow()
    discount = Discount(
        name=name,
        rate=rate,
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=days_left),
        is_active=True,
        perfumes=list(perfumes),
    )
    db.add(discount)
    await db.commit()
    return discount


async def add_to_cart(db, user, perfume, volume, quantity):
    await CartService().add_items(
        user.id,
        [CartItemCreate(perfume_id=perfume.id, volume=volume, quantity=quantity)],
        db,
    )


async def place_order(db, order_service, user, **overrides):
    order_data = OrderCreate(**{**ORDER_DATA, **overrides})
    summary = await order_service.create_order(user.id, order_data, db)
    return await db.get(Order, summary.order_id)


async def mark_delivered(db, order, days_ago=1):
    order.status = OrderStatus.DELIVERED
    order.payment_status = PaymentStatus.COMPLETED
    order.created_at = utcnow() - timedelta(days=days_ago)
    await db.commit()
    return order


async def stock_of(db, perfume_id, volume):
    return await db.scalar(
        select(PerfumeVariant.stock).where(
            PerfumeVariant.perfume_id == perfume_id,
            PerfumeVariant.volume == volume,
        )
    )


def create_access_token(user_id, email, role):
    """Signs a token the way the accounts service does"""
    payload = {"user": {"id": user_id, "email": email, "role": role}}
    return jwt.encode(payload, Config.JWT_SECRET, algorithm=Config.JWT_ALGORITHM)
