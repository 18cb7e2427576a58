from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bazaar_food.config import settings
from bazaar_food.exceptions import ItemUnavailable, RestaurantNotFound
from bazaar_food.models import MenuItem, Order, OrderItem, OrderStatusEnum, PaymentMethodEnum, Restaurant
from bazaar_food.models import TERMINAL_STATUSES
from bazaar_food.schemas.order import OrderCreate
from bazaar_food.services.payment import build_payment_reference

HISTORY_LIMIT = 30
ADMIN_LIST_LIMIT = 200


def _order_query():
    """
    Базовый запрос заказа с items и restaurant.
    populate_existing - чтобы после условного UPDATE не читать устаревший объект из сессии.
    """
    return (
        select(Order)
        .options(
            selectinload(Order.items),
            selectinload(Order.restaurant),
        )
        .execution_options(populate_existing=True)
    )


async def get_restaurant_by_slug(db: AsyncSession, slug: str) -> Optional[Restaurant]:
    result = await db.execute(select(Restaurant).where(Restaurant.slug == slug))
    return result.scalars().first()


async def create_order(db: AsyncSession, order_in: OrderCreate) -> Order:
    """
    Создаёт заказ вместе с позициями одной транзакцией.

    - все блюда должны принадлежать ресторану и быть доступны, иначе ItemUnavailable
      и в базе не появляется ничего;
    - сумма считается по текущим ценам меню, цены клиента не принимаются;
    - наличные сразу confirmed, перевод - created (ждём оплату).
    """
    restaurant = await get_restaurant_by_slug(db, order_in.restaurant_slug)
    if not restaurant:
        raise RestaurantNotFound()

    requested_ids = {line.menu_item_id for line in order_in.items}
    result = await db.execute(
        select(MenuItem).where(
            MenuItem.restaurant_id == restaurant.id,
            MenuItem.id.in_(requested_ids),
        )
    )
    menu = {m.id: m for m in result.scalars().all()}

    lines = []
    for line in order_in.items:
        menu_item = menu.get(line.menu_item_id)
        if not menu_item or not menu_item.is_available:
            raise ItemUnavailable()
        lines.append((menu_item, line.qty))

    is_cash = order_in.payment_method == PaymentMethodEnum.cash
    order = Order(
        restaurant_id=restaurant.id,
        status=OrderStatusEnum.confirmed if is_cash else OrderStatusEnum.created,
        payment_method=order_in.payment_method,
        total_kgs=sum(m.price_kgs * qty for m, qty in lines),
        customer_phone=order_in.customer_phone,
        payer_name=(order_in.payer_name or "").strip() or None,
        comment=order_in.comment or None,
        payment_code=build_payment_reference(settings.PAYMENT_CODE_PREFIX),
        location=order_in.location.model_dump(),
        items=[
            OrderItem(
                menu_item_id=m.id,
                qty=qty,
                price_kgs=m.price_kgs,
                title_snap=m.title,
                photo_snap=m.photo_url or "",
            )
            for m, qty in lines
        ],
    )
    db.add(order)
    await db.commit()

    return await get_order_by_id(db, order.id)


async def get_order_by_id(db: AsyncSession, order_id: str) -> Optional[Order]:
    """
    Возвращает заказ по ID с подгруженными items и restaurant.
    Предотвращает MissingGreenlet при сериализации.
    """
    result = await db.execute(_order_query().where(Order.id == order_id))
    return result.scalars().unique().first()


async def get_orders(
    db: AsyncSession,
    status: Optional[OrderStatusEnum] = None,
    limit: Optional[int] = ADMIN_LIST_LIMIT,
    offset: Optional[int] = None,
) -> List[Order]:
    """
    Список заказов, новые первыми.
    """
    stmt = _order_query().order_by(Order.created_at.desc(), Order.id)

    if status:
        stmt = stmt.where(Order.status == status)
    if limit:
        stmt = stmt.limit(limit)
    if offset:
        stmt = stmt.offset(offset)

    result = await db.execute(stmt)
    return list(result.scalars().unique().all())


async def get_orders_by_phone(db: AsyncSession, phone: str, limit: int = HISTORY_LIMIT) -> List[Order]:
    stmt = (
        _order_query()
        .where(Order.customer_phone == phone)
        .order_by(Order.created_at.desc())
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().unique().all())


async def get_orders_by_ids(db: AsyncSession, ids: Sequence[str]) -> List[Order]:
    if not ids:
        return []
    stmt = _order_query().where(Order.id.in_(list(ids))).order_by(Order.created_at.desc())
    result = await db.execute(stmt)
    return list(result.scalars().unique().all())


async def get_order_history(
    db: AsyncSession,
    ids: Sequence[str] = (),
    phone: Optional[str] = None,
    limit: int = HISTORY_LIMIT,
) -> List[Order]:
    """
    История для клиента: только завершённые заказы (delivered/canceled),
    найденные по списку id ИЛИ по телефону. Новые первыми, не больше limit.
    """
    conditions = []
    if ids:
        conditions.append(Order.id.in_(list(ids)))
    if phone:
        conditions.append(Order.customer_phone == phone)
    if not conditions:
        return []

    stmt = (
        _order_query()
        .where(or_(*conditions))
        .where(Order.status.in_(list(TERMINAL_STATUSES)))
        .order_by(Order.created_at.desc())
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().unique().all())


async def compare_and_set_status(
    db: AsyncSession,
    order_id: str,
    allowed_from: Iterable[OrderStatusEnum],
    new_status: OrderStatusEnum,
    **values,
) -> bool:
    """
    Атомарная смена статуса: UPDATE ... WHERE id = :id AND status IN (:allowed).
    Никакого окна между чтением и записью нет - гонку разрешает сама БД.
    Возвращает True, если строка изменилась.
    """
    stmt = (
        update(Order)
        .where(Order.id == order_id, Order.status.in_(list(allowed_from)))
        .values(status=new_status, **values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount == 1
