from sqlalchemy import Column, Integer, ForeignKey
from sqlalchemy.orm import relationship

from ..db.base import Base
from ..models.base import TimeStampMixin

class CartItem(Base, TimeStampMixin):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False)
    perfume_id = Column(Integer, ForeignKey("perfumes.id"), nullable=False)
    volume = Column(Integer, nullable=False)
    quantity = Column(Integer, default=1, nullable=False)

    # Relationships
    cart = relationship("Cart", back_populates="cart_items")
    perfume = relationship("Perfume", lazy="selectin")


    def __repr__(self):
        return f'<CartItem(cart_id={self.cart_id}, perfume_id={self.perfume_id}, volume={self.volume}, quantity={self.quantity})>'
