"""
Машина состояний заказа.

    created -> pending_confirmation -> confirmed -> cooking -> delivering -> delivered
    (наличные стартуют с confirmed; canceled достижим из любого незавершённого)

Каждый переход - один условный UPDATE (compare-and-swap по текущему статусу).
Если строка не изменилась, заказ перечитывается и по фактическому статусу
выбирается ответ: идемпотентный успех или конкретная ошибка.
Push после успешного перехода - best-effort: ошибка логируется и не
откатывает смену статуса.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bazaar_food.crud.order import compare_and_set_status, get_order_by_id
from bazaar_food.exceptions import (
    AlreadyDelivered,
    InvalidTransition,
    NotBankOrder,
    OrderCanceled,
    OrderNotFound,
    OrderNotPayable,
    PayerNameRequired,
    PaymentNotConfirmed,
    ReasonRequired,
)
from bazaar_food.models import Order, OrderStatusEnum, PaymentMethodEnum
from bazaar_food.services.push import send_order_status_push

logger = logging.getLogger(__name__)

S = OrderStatusEnum

AWAITING_PAYMENT = frozenset({S.created, S.pending_confirmation})
PAYMENT_CONFIRMED = frozenset({S.confirmed, S.cooking, S.delivering})
NON_TERMINAL = AWAITING_PAYMENT | PAYMENT_CONFIRMED

# куда можно продвинуть оплаченный заказ и откуда
ADVANCE_FROM = {
    S.cooking: frozenset({S.confirmed}),
    S.delivering: frozenset({S.confirmed, S.cooking}),
}

MIN_PAYER_NAME = 2
MAX_PAYER_NAME = 60
MAX_CANCEL_REASON = 300


def normalize_reason(value: Optional[str]) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()[:MAX_CANCEL_REASON]


async def _load(db: AsyncSession, order_id: str) -> Order:
    order = await get_order_by_id(db, order_id)
    if not order:
        raise OrderNotFound()
    return order


async def _notify_quietly(db: AsyncSession, order_id: str, status: OrderStatusEnum) -> None:
    try:
        result = await send_order_status_push(db, order_id, status)
        logger.debug("Push for order %s (%s): %s", order_id, status.value, result)
    except Exception:
        # переход уже закоммичен; сессию надо вернуть в рабочее состояние
        await db.rollback()
        logger.exception("Failed to send push for order %s (%s)", order_id, status.value)


async def _changed(
    db: AsyncSession,
    order_id: str,
    previous: OrderStatusEnum,
    new_status: OrderStatusEnum,
) -> Order:
    logger.info("order %s: %s -> %s", order_id, previous.value, new_status.value)
    await _notify_quietly(db, order_id, new_status)
    return await _load(db, order_id)


async def mark_paid(db: AsyncSession, order_id: str, payer_name: Optional[str]) -> Order:
    """
    Клиент сообщает "я оплатил" и указывает имя плательщика.
    Повторная отправка в pending_confirmation допустима (обновляет имя).
    """
    name = (payer_name or "").strip()
    if len(name) < MIN_PAYER_NAME:
        raise PayerNameRequired()
    name = name[:MAX_PAYER_NAME]

    order = await _load(db, order_id)
    if order.payment_method != PaymentMethodEnum.bank:
        raise NotBankOrder()

    if await compare_and_set_status(db, order_id, [S.created], S.pending_confirmation, payer_name=name):
        return await _changed(db, order_id, S.created, S.pending_confirmation)

    # уже на подтверждении (в том числе параллельным запросом): только обновляем имя
    if await compare_and_set_status(
        db, order_id, [S.pending_confirmation], S.pending_confirmation, payer_name=name
    ):
        return await _load(db, order_id)

    raise OrderNotPayable()


async def confirm_payment(db: AsyncSession, order_id: str) -> Order:
    """
    Администратор подтверждает поступление перевода.
    Для уже оплаченных/доставленных заказов - ничего не делает.
    """
    order = await _load(db, order_id)
    previous = order.status

    if previous in AWAITING_PAYMENT:
        if await compare_and_set_status(db, order_id, AWAITING_PAYMENT, S.confirmed):
            return await _changed(db, order_id, previous, S.confirmed)
        order = await _load(db, order_id)

    if order.status == S.canceled:
        raise OrderCanceled()
    return order


async def advance_order(db: AsyncSession, order_id: str, target: OrderStatusEnum) -> Order:
    """
    confirmed -> cooking -> delivering.
    """
    target = OrderStatusEnum(target)
    allowed = ADVANCE_FROM.get(target)
    if allowed is None:
        raise InvalidTransition(f"Cannot move order to {target.value}")

    order = await _load(db, order_id)
    previous = order.status
    if previous == target:
        return order

    if previous in allowed and await compare_and_set_status(db, order_id, allowed, target):
        return await _changed(db, order_id, previous, target)

    order = await _load(db, order_id)
    if order.status == target:
        return order
    if order.status in AWAITING_PAYMENT:
        raise PaymentNotConfirmed()
    if order.status == S.canceled:
        raise OrderCanceled()
    raise InvalidTransition(f"Cannot move order from {order.status.value} to {target.value}")


async def deliver_order(db: AsyncSession, order_id: str) -> Order:
    """
    Отметка о доставке. Повторный вызов на delivered - успех без побочных эффектов.
    """
    order = await _load(db, order_id)
    previous = order.status

    if previous in PAYMENT_CONFIRMED:
        if await compare_and_set_status(db, order_id, PAYMENT_CONFIRMED, S.delivered):
            return await _changed(db, order_id, previous, S.delivered)
        order = await _load(db, order_id)

    if order.status == S.delivered:
        return order
    if order.status in AWAITING_PAYMENT:
        raise PaymentNotConfirmed()
    raise OrderCanceled()


async def admin_cancel_order(db: AsyncSession, order_id: str, reason: Optional[str]) -> Order:
    """
    Отмена из админки. Причина обязательна (до 300 символов, лишнее обрезается).
    """
    reason = normalize_reason(reason)
    if not reason:
        raise ReasonRequired()

    order = await _load(db, order_id)
    previous = order.status

    # не только оплаченные: админ отклоняет и заказ, перевод по которому не пришёл
    # (created / pending_confirmation -> canceled с причиной)
    if previous in NON_TERMINAL:
        if await compare_and_set_status(db, order_id, NON_TERMINAL, S.canceled, canceled_reason=reason):
            return await _changed(db, order_id, previous, S.canceled)
        order = await _load(db, order_id)

    if order.status == S.delivered:
        raise AlreadyDelivered()
    raise OrderCanceled("Order is already canceled")


async def customer_cancel_order(db: AsyncSession, order_id: str, reason: Optional[str] = None) -> Order:
    """
    Отмена клиентом. Заказ не удаляется, только получает статус canceled;
    причина необязательна. Повторная отмена - успех.
    """
    reason = normalize_reason(reason) or None

    order = await _load(db, order_id)
    previous = order.status

    if previous in NON_TERMINAL:
        if await compare_and_set_status(db, order_id, NON_TERMINAL, S.canceled, canceled_reason=reason):
            return await _changed(db, order_id, previous, S.canceled)
        order = await _load(db, order_id)

    if order.status == S.delivered:
        raise AlreadyDelivered()
    return order
