from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..db.base import Base
from .base import TimeStampMixin


class Perfume(Base, TimeStampMixin):
    __tablename__ = "perfumes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    brand = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    total_sales = Column(Integer, default=0, nullable=False)

    # Relationships
    variants = relationship(
        "PerfumeVariant",
        back_populates="perfume",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PerfumeVariant.volume",
    )
    discounts = relationship("Discount", secondary="discount_perfumes", back_populates="perfumes")

    def get_variant(self, volume: int):
        """ Returns the variant sold in the given volume (ml) or None. """
        return next((v for v in self.variants if v.volume == volume), None)


    def __repr__(self):
        return f"<Perfume(id={self.id}, name={self.name}, brand={self.brand})>"


class PerfumeVariant(Base):
    """
    One purchasable size of a perfume.

    Attributes:
        volume (int): Bottle size in ml.
        price (float): List price before any discount.
        stock (int): Units available. Only mutated through atomic updates.
        is_active (bool): Inactive variants cannot be ordered.
    """

    __tablename__ = "perfume_variants"

    id = Column(Integer, primary_key=True, index=True)
    perfume_id = Column(Integer, ForeignKey("perfumes.id", ondelete="CASCADE"), nullable=False)
    volume = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    perfume = relationship("Perfume", back_populates="variants")

    __table_args__ = (
        UniqueConstraint("perfume_id", "volume", name="uq_perfume_variant_volume"),
    )


    def __repr__(self):
        return f"<PerfumeVariant(perfume_id={self.perfume_id}, volume={self.volume}, stock={self.stock})>"
