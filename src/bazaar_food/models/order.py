import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Enum as SAEnum, func
from sqlalchemy.orm import relationship
from ..db.base import Base
from ._ids import new_id


class OrderStatusEnum(str, enum.Enum):
    created = "created"
    pending_confirmation = "pending_confirmation"
    confirmed = "confirmed"
    cooking = "cooking"
    delivering = "delivering"
    delivered = "delivered"
    canceled = "canceled"


class PaymentMethodEnum(str, enum.Enum):
    bank = "bank"
    cash = "cash"


TERMINAL_STATUSES = frozenset({OrderStatusEnum.delivered, OrderStatusEnum.canceled})


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=new_id)
    restaurant_id = Column(String(32), ForeignKey("restaurants.id"), nullable=False, index=True)
    status = Column(SAEnum(OrderStatusEnum, name="order_status"), nullable=False, default=OrderStatusEnum.created)
    payment_method = Column(SAEnum(PaymentMethodEnum, name="payment_method"), nullable=False)
    total_kgs = Column(Integer, nullable=False)  # фиксируется при создании
    payer_name = Column(String(60), nullable=True)
    customer_phone = Column(String(12), nullable=False, index=True)
    comment = Column(String(120), nullable=True)
    payment_code = Column(String(16), nullable=False)
    location = Column(JSON, nullable=False)  # {line, container, landmark}
    canceled_reason = Column(String(300), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # связи
    restaurant = relationship("Restaurant", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    push_subscriptions = relationship("PushSubscription", back_populates="order", cascade="all, delete-orphan")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
