"""
Web push по смене статуса заказа.

Доставка best-effort: одна попытка на подписку, без очереди повторов.
Подписки, про которые push-сервис ответил 404/410, удаляются.
Клиентский опрос статуса остаётся основным каналом.
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from pywebpush import WebPushException, webpush
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar_food.config import settings
from bazaar_food.models import OrderStatusEnum, PushSubscription

logger = logging.getLogger(__name__)

GONE_STATUS_CODES = {404, 410}

STATUS_MESSAGES = {
    OrderStatusEnum.pending_confirmation: "Payment received. Waiting for restaurant confirmation.",
    OrderStatusEnum.confirmed: "Order confirmed by restaurant.",
    OrderStatusEnum.cooking: "Your order is being prepared.",
    OrderStatusEnum.delivering: "Your order is on the way.",
    OrderStatusEnum.delivered: "Order marked as delivered.",
    OrderStatusEnum.canceled: "Order canceled.",
}


@dataclass(frozen=True)
class PushConfig:
    public_key: str
    private_key: str
    subject: str


@dataclass
class PushResult:
    sent: int = 0
    removed: int = 0
    skipped: bool = False


@lru_cache(maxsize=1)
def get_push_config() -> Optional[PushConfig]:
    """
    VAPID-ключи читаются один раз на процесс.
    None - push не настроен, рассылка пропускается.
    """
    public_key = settings.VAPID_PUBLIC_KEY.strip()
    private_key = settings.VAPID_PRIVATE_KEY.strip()
    subject = settings.VAPID_SUBJECT.strip()
    if not (public_key and private_key and subject):
        logger.info("Web push is not configured, notifications disabled")
        return None
    return PushConfig(public_key=public_key, private_key=private_key, subject=subject)


def is_push_configured() -> bool:
    return get_push_config() is not None


def build_status_payload(order_id: str, status: OrderStatusEnum) -> dict:
    status = OrderStatusEnum(status)
    return {
        "title": settings.APP_NAME,
        "body": STATUS_MESSAGES.get(status, "Order status updated."),
        "url": f"/order/{order_id}",
        "orderId": order_id,
        "status": status.value,
    }


def _response_status(error: WebPushException) -> int:
    response = getattr(error, "response", None)
    return getattr(response, "status_code", 0) or 0


async def save_push_subscription(
    db: AsyncSession,
    order_id: str,
    endpoint: str,
    p256dh: str,
    auth: str,
    expiration_time: Optional[float] = None,
) -> PushSubscription:
    """
    Upsert по (order_id, endpoint): повторная подписка обновляет ключи.
    """
    expires = None
    if expiration_time is not None:
        expires = datetime.fromtimestamp(expiration_time / 1000, tz=timezone.utc)

    stmt = select(PushSubscription).where(
        PushSubscription.order_id == order_id,
        PushSubscription.endpoint == endpoint,
    )
    sub = (await db.execute(stmt)).scalars().first()
    if sub is None:
        sub = PushSubscription(order_id=order_id, endpoint=endpoint)
        db.add(sub)

    sub.p256dh = p256dh
    sub.auth = auth
    sub.expiration_time = expires

    try:
        await db.commit()
    except IntegrityError:
        # параллельная подписка того же устройства успела вставить строку
        await db.rollback()
        sub = (await db.execute(stmt)).scalars().one()
        sub.p256dh = p256dh
        sub.auth = auth
        sub.expiration_time = expires
        await db.commit()
    return sub


async def remove_push_subscription(db: AsyncSession, endpoint: str, order_id: Optional[str] = None) -> int:
    """
    Без order_id удаляет подписку устройства со всех заказов.
    """
    stmt = delete(PushSubscription).where(PushSubscription.endpoint == endpoint)
    if order_id:
        stmt = stmt.where(PushSubscription.order_id == order_id)
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount or 0


async def list_push_subscriptions(db: AsyncSession, order_id: str) -> list:
    result = await db.execute(select(PushSubscription).where(PushSubscription.order_id == order_id))
    return list(result.scalars().all())


async def send_order_status_push(
    db: AsyncSession,
    order_id: str,
    status: OrderStatusEnum,
    config: Optional[PushConfig] = None,
) -> PushResult:
    """
    Рассылает уведомление на все устройства, подписанные на заказ.
    Возвращает счётчики sent/removed; skipped=True, если push не настроен.
    """
    config = config or get_push_config()
    if config is None:
        return PushResult(skipped=True)

    subs = await list_push_subscriptions(db, order_id)
    if not subs:
        return PushResult()

    data = json.dumps(build_status_payload(order_id, status))
    stale = set()
    sent = 0

    for sub in subs:
        subscription_info = {"endpoint": sub.endpoint, "keys": {"p256dh": sub.p256dh, "auth": sub.auth}}
        try:
            await run_in_threadpool(
                webpush,
                subscription_info=subscription_info,
                data=data,
                vapid_private_key=config.private_key,
                vapid_claims={"sub": config.subject},
            )
            sent += 1
        except WebPushException as e:
            code = _response_status(e)
            if code in GONE_STATUS_CODES:
                stale.add(sub.endpoint)
            else:
                logger.warning("Push to %s failed for order %s: %s", sub.endpoint, order_id, e)
        except Exception:
            # сетевые ошибки и т.п. - пропускаем только эту подписку
            logger.exception("Push to %s failed for order %s", sub.endpoint, order_id)

    if stale:
        await db.execute(
            delete(PushSubscription).where(
                PushSubscription.order_id == order_id,
                PushSubscription.endpoint.in_(stale),
            )
        )
        await db.commit()
        logger.info("Removed %d stale push subscription(s) for order %s", len(stale), order_id)

    return PushResult(sent=sent, removed=len(stale))
