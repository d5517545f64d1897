from sqlalchemy import Column, Integer, Float, ForeignKey
from sqlalchemy.orm import relationship

from ..db.base import Base
from perfumepoint.models.base import TimeStampMixin


class OrderItem(Base, TimeStampMixin):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    perfume_id = Column(Integer, ForeignKey("perfumes.id"), nullable=False)
    volume = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    discounted_unit_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)

    # Relationships
    order = relationship("Order", back_populates="items")
    perfume = relationship("Perfume", lazy="selectin")


    def __repr__(self):
        return f'<OrderItem(id={self.id}, order_id={self.order_id}, perfume_id={self.perfume_id}, quantity={self.quantity})>'
