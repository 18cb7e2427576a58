from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar_food.crud.restaurant import get_menu_restaurant
from bazaar_food.db.deps import get_async_session
from bazaar_food.exceptions import RestaurantNotFound
from bazaar_food.schemas.restaurant import CategoryRead, MenuItemRead, MenuRead, RestaurantBrief

router = APIRouter(prefix="/restaurants", tags=["restaurants"])


@router.get("/{slug}/menu", response_model=MenuRead)
async def get_menu(slug: str, db: AsyncSession = Depends(get_async_session)):
    """
    Меню ресторана. Неизвестный или выключенный slug - отдаём первый активный ресторан.
    """
    restaurant = await get_menu_restaurant(db, slug)
    if not restaurant:
        raise RestaurantNotFound()

    return MenuRead(
        restaurant=RestaurantBrief.model_validate(restaurant),
        categories=[CategoryRead.model_validate(c) for c in restaurant.categories],
        items=[MenuItemRead.from_orm_item(i) for i in restaurant.menu_items],
    )
