from sqlalchemy import Column, Enum, Integer, String
from sqlalchemy.orm import relationship

from ..models.base import TimeStampMixin, Base
from ..enums import UserRole


class User(Base, TimeStampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.CUSTOMER, nullable=False)

    # Relationships
    orders = relationship("Order", back_populates="customer")
    cart = relationship("Cart", back_populates="customer", uselist=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_manager(self) -> bool:
        return self.role in (UserRole.SALES_MANAGER, UserRole.PRODUCT_MANAGER)


    def __repr__(self):
        return f'<User(id={self.id}, email={self.email}, role={self.role})>'
