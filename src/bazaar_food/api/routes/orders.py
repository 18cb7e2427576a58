import re
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar_food.config import settings
from bazaar_food.crud.order import HISTORY_LIMIT, create_order, get_order_by_id, get_order_history
from bazaar_food.db.deps import get_async_session
from bazaar_food.exceptions import InvalidPayload, OrderNotFound
from bazaar_food.models import PaymentMethodEnum
from bazaar_food.schemas.order import (
    CancelRequest,
    MarkPaidRequest,
    OrderCreate,
    OrderCreated,
    OrderList,
    OrderRead,
    StatusChange,
)
from bazaar_food.services import order_flow
from bazaar_food.services.payment import build_bank_pay_url

router = APIRouter(prefix="/orders", tags=["orders"])

MIN_PHONE_DIGITS = 7


def to_order_read(order) -> OrderRead:
    pay_url = None
    if order.payment_method == PaymentMethodEnum.bank:
        pay_url = build_bank_pay_url(order.total_kgs, order.restaurant.mbank_number, settings.MBANK_PAY_URL)
    return OrderRead.from_orm_full(order, pay_url=pay_url)


@router.post("", response_model=OrderCreated)
async def create_order_endpoint(order_in: OrderCreate, db: AsyncSession = Depends(get_async_session)):
    """
    Оформление заказа. Возвращает только id, детали - через GET /orders/{id}.
    """
    order = await create_order(db, order_in)
    return OrderCreated(order_id=order.id)


@router.get("/history", response_model=OrderList)
async def order_history(
    ids: Optional[str] = Query(None, description="id заказов через запятую"),
    phone: Optional[str] = Query(None, description="Телефон клиента"),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Завершённые заказы клиента по id из локальной истории или по телефону.
    """
    id_list = [x.strip() for x in (ids or "").split(",") if x.strip()][:HISTORY_LIMIT]
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) < MIN_PHONE_DIGITS:
        digits = ""
    if not id_list and not digits:
        raise InvalidPayload("phone or ids required")

    orders = await get_order_history(db, ids=id_list, phone=digits or None)
    return OrderList(orders=[to_order_read(o) for o in orders])


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: str = Path(..., description="ID заказа"),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Полная карточка заказа: позиции, адрес, ресторан и ссылка на оплату.
    """
    order = await get_order_by_id(db, order_id)
    if not order:
        raise OrderNotFound()
    return to_order_read(order)


@router.post("/{order_id}/mark-paid", response_model=StatusChange)
async def mark_paid_endpoint(
    order_id: str,
    body: Optional[MarkPaidRequest] = None,
    db: AsyncSession = Depends(get_async_session),
):
    """
    "Я оплатил": заказ уходит на подтверждение администратору.
    """
    order = await order_flow.mark_paid(db, order_id, body.payer_name if body else None)
    return StatusChange(status=order.status)


@router.post("/{order_id}/cancel", response_model=StatusChange)
async def cancel_order_endpoint(
    order_id: str,
    body: Optional[CancelRequest] = None,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Отмена заказа клиентом (причина необязательна).
    """
    order = await order_flow.customer_cancel_order(db, order_id, body.reason if body else None)
    return StatusChange(status=order.status, canceled_reason=order.canceled_reason)
