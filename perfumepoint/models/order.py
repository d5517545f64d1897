from sqlalchemy import Column, Integer, String, Float, ForeignKey, Enum, JSON
from sqlalchemy.orm import relationship

from ..db.base import Base
from ..enums import OrderStatus, PaymentStatus
from ..models.base import TimeStampMixin


class Order(Base, TimeStampMixin):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(Enum(OrderStatus), default=OrderStatus.PROCESSING, nullable=False)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    shipping_address = Column(String, nullable=False)
    tax_id = Column(String, nullable=True)
    payment_id = Column(String, nullable=True)
    invoice_number = Column(String, nullable=True, unique=True, index=True)
    invoice_url = Column(String, nullable=True)
    total_amount = Column(Float, nullable=False, default=0)
    discount_amount = Column(Float, nullable=False, default=0)
    applied_discount_ids = Column(JSON, nullable=False, default=list)

    # Card fields are one-way bcrypt hashes, only the last four digits are readable
    card_number_hash = Column(String, nullable=False)
    card_holder_hash = Column(String, nullable=False)
    card_expiry_month_hash = Column(String, nullable=False)
    card_expiry_year_hash = Column(String, nullable=False)
    card_cvv_hash = Column(String, nullable=False)
    card_last_four = Column(String(4), nullable=False)

    # Relationships
    customer = relationship("User", back_populates="orders", lazy="selectin")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )
    refund_requests = relationship("RefundRequest", back_populates="order")

    def find_item(self, perfume_id: int, volume: int = None):
        """ Returns the line for the perfume (and volume, when given) or None. """
        for item in self.items:
            if item.perfume_id == perfume_id and (volume is None or item.volume == volume):
                return item
        return None


    def __repr__(self):
        return f'<Order(id={self.id}, customer_id={self.customer_id}, status={self.status}, total_amount={self.total_amount})>'
