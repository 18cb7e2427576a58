from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar_food.api.deps import require_admin
from bazaar_food.api.routes.orders import to_order_read
from bazaar_food.crud.order import ADMIN_LIST_LIMIT, get_order_by_id, get_orders
from bazaar_food.crud.restaurant import list_active_restaurants, update_bank_numbers
from bazaar_food.db.deps import get_async_session
from bazaar_food.exceptions import OrderNotFound
from bazaar_food.models import OrderStatusEnum
from bazaar_food.schemas.order import CancelRequest, OrderList, OrderRead, StatusChange
from bazaar_food.schemas.restaurant import RestaurantBankUpdate, RestaurantBanks
from bazaar_food.services import order_flow

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/orders", response_model=OrderList)
async def list_orders(
    status: Optional[OrderStatusEnum] = Query(None, description="Фильтр по статусу"),
    limit: int = Query(ADMIN_LIST_LIMIT, ge=1, le=ADMIN_LIST_LIMIT, description="Количество записей"),
    offset: Optional[int] = Query(None, ge=0, description="Смещение для пагинации"),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Последние заказы для панели, новые первыми.
    """
    orders = await get_orders(db, status=status, limit=limit, offset=offset)
    return OrderList(orders=[to_order_read(o) for o in orders])


@router.get("/orders/{order_id}", response_model=OrderRead)
async def get_order(order_id: str, db: AsyncSession = Depends(get_async_session)):
    order = await get_order_by_id(db, order_id)
    if not order:
        raise OrderNotFound()
    return to_order_read(order)


@router.post("/orders/{order_id}/confirm", response_model=StatusChange)
async def confirm_order(order_id: str, db: AsyncSession = Depends(get_async_session)):
    """
    Подтверждение оплаты.
    """
    order = await order_flow.confirm_payment(db, order_id)
    return StatusChange(status=order.status)


@router.post("/orders/{order_id}/cooking", response_model=StatusChange)
async def start_cooking(order_id: str, db: AsyncSession = Depends(get_async_session)):
    order = await order_flow.advance_order(db, order_id, OrderStatusEnum.cooking)
    return StatusChange(status=order.status)


@router.post("/orders/{order_id}/delivering", response_model=StatusChange)
async def start_delivery(order_id: str, db: AsyncSession = Depends(get_async_session)):
    order = await order_flow.advance_order(db, order_id, OrderStatusEnum.delivering)
    return StatusChange(status=order.status)


@router.post("/orders/{order_id}/deliver", response_model=StatusChange)
async def deliver_order(order_id: str, db: AsyncSession = Depends(get_async_session)):
    """
    Заказ доставлен. Доступно только после подтверждения оплаты.
    """
    order = await order_flow.deliver_order(db, order_id)
    return StatusChange(status=order.status)


@router.post("/orders/{order_id}/cancel", response_model=StatusChange)
async def cancel_order(
    order_id: str,
    body: Optional[CancelRequest] = None,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Отмена администратором, причина обязательна.
    """
    order = await order_flow.admin_cancel_order(db, order_id, body.reason if body else None)
    return StatusChange(status=order.status, canceled_reason=order.canceled_reason)


@router.get("/restaurants")
async def list_restaurants(db: AsyncSession = Depends(get_async_session)):
    restaurants = await list_active_restaurants(db)
    return {"restaurants": [RestaurantBanks.from_orm_banks(r) for r in restaurants]}


@router.patch("/restaurants", response_model=RestaurantBanks)
async def patch_restaurant_banks(body: RestaurantBankUpdate, db: AsyncSession = Depends(get_async_session)):
    """
    Обновление номеров банков ресторана. Номер в формате 996XXXXXXXXX, пустое значение - очистить.
    """
    restaurant = await update_bank_numbers(db, body.slug, body.model_dump(exclude_unset=True, exclude={"slug"}))
    return RestaurantBanks.from_orm_banks(restaurant)
