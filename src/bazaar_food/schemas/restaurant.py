from typing import List, Optional

from .order import CamelModel


class RestaurantBrief(CamelModel):
    id: str
    name: str
    slug: str


class CategoryRead(CamelModel):
    id: str
    title: str
    sort_order: int


class MenuItemRead(CamelModel):
    id: str
    category_id: Optional[str] = None
    title: str
    description: str = ""
    photo_url: str = ""
    price_kgs: int
    is_available: bool
    sort_order: int

    @classmethod
    def from_orm_item(cls, item):
        return cls(
            id=item.id,
            category_id=item.category_id,
            title=item.title,
            description=item.description or "",
            photo_url=item.photo_url or "",
            price_kgs=item.price_kgs,
            is_available=item.is_available,
            sort_order=item.sort_order,
        )


class MenuRead(CamelModel):
    restaurant: RestaurantBrief
    categories: List[CategoryRead] = []
    items: List[MenuItemRead] = []


class RestaurantBanks(CamelModel):
    id: str
    name: str
    slug: str
    mbank_number: str = ""
    obank_number: str = ""
    bakai_number: str = ""

    @classmethod
    def from_orm_banks(cls, restaurant):
        return cls(
            id=restaurant.id,
            name=restaurant.name,
            slug=restaurant.slug,
            mbank_number=restaurant.mbank_number or "",
            obank_number=restaurant.obank_number or "",
            bakai_number=restaurant.bakai_number or "",
        )


class RestaurantBankUpdate(CamelModel):
    """
    Частичное обновление номеров банков.
    Пустая строка или null очищает номер.
    """

    slug: str
    mbank_number: Optional[str] = None
    obank_number: Optional[str] = None
    bakai_number: Optional[str] = None

    class Config:
        extra = "forbid"
