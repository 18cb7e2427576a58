from sqlalchemy import Column, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from ..db.base import Base
from ._ids import new_id


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(String(32), primary_key=True, default=new_id)
    slug = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(128), nullable=False)
    # номера получателя перевода, формат 996XXXXXXXXX
    mbank_number = Column(String(12), nullable=True)
    obank_number = Column(String(12), nullable=True)
    bakai_number = Column(String(12), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # связи
    categories = relationship("Category", back_populates="restaurant", order_by="Category.sort_order")
    menu_items = relationship("MenuItem", back_populates="restaurant", order_by="MenuItem.sort_order")
    orders = relationship("Order", back_populates="restaurant")
