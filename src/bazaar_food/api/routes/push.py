from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar_food.crud.order import get_order_by_id
from bazaar_food.db.deps import get_async_session
from bazaar_food.exceptions import OrderNotFound
from bazaar_food.schemas.push import PushSubscribeRequest, PushSubscribeResult, PushUnsubscribeRequest
from bazaar_food.services.push import is_push_configured, remove_push_subscription, save_push_subscription

router = APIRouter(prefix="/push", tags=["push"])


@router.post("/subscribe", response_model=PushSubscribeResult)
async def subscribe(body: PushSubscribeRequest, db: AsyncSession = Depends(get_async_session)):
    """
    Подписка устройства на уведомления по заказу.
    """
    order = await get_order_by_id(db, body.order_id)
    if not order:
        raise OrderNotFound()

    sub = body.subscription
    await save_push_subscription(
        db,
        order_id=order.id,
        endpoint=sub.endpoint,
        p256dh=sub.keys.p256dh,
        auth=sub.keys.auth,
        expiration_time=sub.expiration_time,
    )
    return PushSubscribeResult(push_configured=is_push_configured())


@router.post("/unsubscribe")
async def unsubscribe(body: PushUnsubscribeRequest, db: AsyncSession = Depends(get_async_session)):
    order_id = (body.order_id or "").strip() or None
    await remove_push_subscription(db, endpoint=body.endpoint, order_id=order_id)
    return {"ok": True}
