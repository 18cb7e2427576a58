from pydantic import BaseModel, conint, constr, conlist, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime

from bazaar_food.models import OrderStatusEnum, PaymentMethodEnum

# старые клиенты присылают qr_image вместо bank
LEGACY_PAYMENT_METHODS = {"qr_image": PaymentMethodEnum.bank.value}

PHONE_PATTERN = r"^996\d{9}$"


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class DeliveryLocation(CamelModel):
    line: constr(strip_whitespace=True, min_length=1, max_length=32)
    container: constr(strip_whitespace=True, min_length=1, max_length=32)
    landmark: Optional[constr(strip_whitespace=True, max_length=80)] = ""


class OrderItemCreate(CamelModel):
    menu_item_id: constr(min_length=1)
    qty: conint(ge=1, le=50)


class OrderCreate(CamelModel):
    restaurant_slug: constr(strip_whitespace=True, min_length=1)
    items: conlist(OrderItemCreate, min_length=1)
    location: DeliveryLocation
    payment_method: PaymentMethodEnum = PaymentMethodEnum.bank
    customer_phone: constr(strip_whitespace=True, pattern=PHONE_PATTERN)
    payer_name: Optional[constr(strip_whitespace=True, max_length=60)] = None
    comment: Optional[constr(max_length=120)] = None

    @field_validator("payment_method", mode="before")
    @classmethod
    def translate_legacy_method(cls, value):
        if isinstance(value, str):
            return LEGACY_PAYMENT_METHODS.get(value, value)
        return value


class OrderCreated(CamelModel):
    order_id: str


class OrderItemRead(CamelModel):
    id: str
    menu_item_id: str
    title: str
    qty: int
    price_kgs: int
    photo_url: str = ""

    @classmethod
    def from_orm_snapshot(cls, item):
        return cls(
            id=item.id,
            menu_item_id=item.menu_item_id,
            title=item.title_snap,
            qty=item.qty,
            price_kgs=item.price_kgs,
            photo_url=item.photo_snap or "",
        )


class RestaurantSummary(CamelModel):
    name: str
    slug: str
    mbank_number: str = ""
    obank_number: str = ""
    bakai_number: str = ""


class OrderRead(CamelModel):
    id: str
    status: OrderStatusEnum
    payment_method: PaymentMethodEnum
    total_kgs: int
    payer_name: str = ""
    payment_code: str
    pay_url: Optional[str] = None
    customer_phone: str
    comment: str = ""
    canceled_reason: str = ""
    location: DeliveryLocation
    restaurant: RestaurantSummary
    items: List[OrderItemRead] = []
    item_count: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_orm_full(cls, order, pay_url: Optional[str] = None):
        """
        Собирает полное представление заказа.
        Ресторан берётся живой (join), позиции - из снимков.
        """
        restaurant = order.restaurant
        return cls(
            id=order.id,
            status=order.status,
            payment_method=order.payment_method,
            total_kgs=order.total_kgs,
            payer_name=order.payer_name or "",
            payment_code=order.payment_code,
            pay_url=pay_url,
            customer_phone=order.customer_phone,
            comment=order.comment or "",
            canceled_reason=order.canceled_reason or "",
            location=DeliveryLocation.model_validate(order.location or {}),
            restaurant=RestaurantSummary(
                name=restaurant.name,
                slug=restaurant.slug,
                mbank_number=restaurant.mbank_number or "",
                obank_number=restaurant.obank_number or "",
                bakai_number=restaurant.bakai_number or "",
            ),
            items=[OrderItemRead.from_orm_snapshot(i) for i in order.items],
            item_count=sum(i.qty for i in order.items),
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderList(CamelModel):
    orders: List[OrderRead] = []


class MarkPaidRequest(CamelModel):
    payer_name: Optional[str] = None


class CancelRequest(CamelModel):
    reason: Optional[str] = None


class StatusChange(CamelModel):
    ok: bool = True
    status: OrderStatusEnum
    canceled_reason: Optional[str] = None
