from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bazaar_food.exceptions import InvalidPayload, RestaurantNotFound
from bazaar_food.models import Restaurant
from bazaar_food.services.payment import normalize_bank_number

BANK_FIELDS = ("mbank_number", "obank_number", "bakai_number")


async def get_menu_restaurant(db: AsyncSession, slug: str) -> Optional[Restaurant]:
    """
    Ресторан для витрины с категориями и блюдами.
    Если slug не найден или ресторан выключен - первый активный.
    """
    options = (selectinload(Restaurant.categories), selectinload(Restaurant.menu_items))

    result = await db.execute(select(Restaurant).where(Restaurant.slug == slug).options(*options))
    restaurant = result.scalars().first()
    if restaurant and restaurant.is_active:
        return restaurant

    result = await db.execute(
        select(Restaurant)
        .where(Restaurant.is_active.is_(True))
        .order_by(Restaurant.created_at.asc())
        .options(*options)
    )
    return result.scalars().first()


async def list_active_restaurants(db: AsyncSession) -> List[Restaurant]:
    result = await db.execute(
        select(Restaurant).where(Restaurant.is_active.is_(True)).order_by(Restaurant.created_at.asc())
    )
    return list(result.scalars().all())


async def update_bank_numbers(db: AsyncSession, slug: str, numbers: Dict[str, Optional[str]]) -> Restaurant:
    """
    Меняет только переданные номера. Пустое значение очищает номер,
    невалидное - ошибка, ничего не сохраняется.
    """
    if not any(key in numbers for key in BANK_FIELDS):
        raise InvalidPayload("Nothing to update")

    result = await db.execute(select(Restaurant).where(Restaurant.slug == slug.strip()))
    restaurant = result.scalars().first()
    if not restaurant:
        raise RestaurantNotFound()

    cleaned = {}
    for key in BANK_FIELDS:
        if key not in numbers:
            continue
        raw = (numbers[key] or "").strip()
        if not raw:
            cleaned[key] = None
            continue
        value = normalize_bank_number(raw)
        if value is None:
            raise InvalidPayload(f"Invalid bank number for {key}: expected 996XXXXXXXXX")
        cleaned[key] = value

    for key, value in cleaned.items():
        setattr(restaurant, key, value)
    await db.commit()
    await db.refresh(restaurant)
    return restaurant
