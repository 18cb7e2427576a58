from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from ..db.base import Base
from ._ids import new_id


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(32), primary_key=True, default=new_id)
    order_id = Column(String(32), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    # удаление блюда из меню запрещено, пока на него ссылаются заказы
    menu_item_id = Column(String(32), ForeignKey("menu_items.id", ondelete="RESTRICT"), nullable=False)
    qty = Column(Integer, nullable=False, default=1)
    price_kgs = Column(Integer, nullable=False)  # фиксируется на момент заказа
    title_snap = Column(String(60), nullable=False)
    photo_snap = Column(String(512), nullable=False, default="")

    # связи
    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem", back_populates="order_items")
