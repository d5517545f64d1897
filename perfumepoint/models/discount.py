from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from ..db.base import Base
from .base import TimeStampMixin


class Discount(Base, TimeStampMixin):
    """
    A time-bounded percentage reduction applied to a set of perfumes.

    Attributes:
        id (int): Primary key identifier for the discount.
        name (str): Unique campaign name.
        rate (float): Discount rate in percent (e.g. 10 for 10%).
        start_date (datetime): When the discount becomes effective.
        end_date (datetime): When the discount expires.
        is_active (bool): Inactive discounts are never applied.
        perfumes (List[Perfume]): Perfumes the discount covers.
    """

    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    rate = Column(Float, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # relationship
    perfumes = relationship("Perfume", secondary="discount_perfumes", back_populates="discounts", lazy="selectin")


    def __repr__(self):
        return (
            f'<Discount(id={self.id}, name={self.name}, rate={self.rate},'
            f' start_date={self.start_date}, end_date={self.end_date})>'
        )


# Association table for many-to-many relationship between Discount and Perfume
discount_perfumes = Table(
    "discount_perfumes",
    Base.metadata,
    Column("discount_id", ForeignKey("discounts.id", ondelete="CASCADE"), primary_key=True),
    Column("perfume_id", ForeignKey("perfumes.id", ondelete="CASCADE"), primary_key=True),
)
