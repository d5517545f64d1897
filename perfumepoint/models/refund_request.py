from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.base import Base
from ..enums import RefundRequestStatus
from .base import TimeStampMixin


class RefundRequest(Base, TimeStampMixin):
    __tablename__ = "refund_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    total_refund_amount = Column(Float, nullable=False)
    status = Column(Enum(RefundRequestStatus), default=RefundRequestStatus.PENDING, nullable=False)
    rejection_reason = Column(Text, nullable=True)
    processed_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", lazy="selectin")
    order = relationship("Order", back_populates="refund_requests", lazy="selectin")
    items = relationship(
        "RefundRequestItem",
        back_populates="refund_request",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="RefundRequestItem.id",
    )


    def __repr__(self):
        return f'<RefundRequest(id={self.id}, order_id={self.order_id}, status={self.status})>'


class RefundRequestItem(Base):
    __tablename__ = "refund_request_items"

    id = Column(Integer, primary_key=True, index=True)
    refund_request_id = Column(Integer, ForeignKey("refund_requests.id", ondelete="CASCADE"), nullable=False)
    perfume_id = Column(Integer, ForeignKey("perfumes.id"), nullable=False)
    volume = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    refund_amount = Column(Float, nullable=False)

    refund_request = relationship("RefundRequest", back_populates="items")
    perfume = relationship("Perfume", lazy="selectin")
