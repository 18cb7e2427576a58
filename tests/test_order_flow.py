"""Переходы статусов заказа и уведомления о них."""

import pytest

from bazaar_food.crud import order as crud
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
from bazaar_food.models import OrderStatusEnum, PushSubscription
from bazaar_food.services import order_flow
from bazaar_food.services import push as push_service

from test_order_store import make_order_in

S = OrderStatusEnum


@pytest.fixture
def sent(monkeypatch):
    """Статусы, для которых запрашивалась рассылка push."""
    calls = []

    async def record(db, order_id, status, config=None):
        calls.append(status)
        return push_service.PushResult()

    monkeypatch.setattr(order_flow, "send_order_status_push", record)
    return calls


@pytest.fixture
def place(db, menu):
    async def make(payment_method="bank"):
        return await crud.create_order(db, make_order_in(menu, payment_method))

    return make


class TestMarkPaid:
    async def test_moves_to_pending_and_stores_payer(self, db, place, sent) -> None:
        order = await place("bank")

        updated = await order_flow.mark_paid(db, order.id, "  Aibek K.  ")

        assert updated.status == S.pending_confirmation
        assert updated.payer_name == "Aibek K."
        assert sent == [S.pending_confirmation]

    async def test_resubmit_updates_name_without_notification(self, db, place, sent) -> None:
        order = await place("bank")
        await order_flow.mark_paid(db, order.id, "Aibek")

        updated = await order_flow.mark_paid(db, order.id, "Aibek Kadyrov")

        assert updated.status == S.pending_confirmation
        assert updated.payer_name == "Aibek Kadyrov"
        assert sent == [S.pending_confirmation]

    @pytest.mark.parametrize("name", [None, "", " ", "A"])
    async def test_payer_name_required(self, db, place, sent, name) -> None:
        order = await place("bank")
        with pytest.raises(PayerNameRequired):
            await order_flow.mark_paid(db, order.id, name)
        assert sent == []

    async def test_cash_order_rejected(self, db, place) -> None:
        order = await place("cash")
        with pytest.raises(NotBankOrder):
            await order_flow.mark_paid(db, order.id, "Aibek")

    async def test_after_confirmation_rejected(self, db, place, sent) -> None:
        order = await place("bank")
        await order_flow.confirm_payment(db, order.id)

        with pytest.raises(OrderNotPayable):
            await order_flow.mark_paid(db, order.id, "Aibek")

    async def test_missing_order(self, db, menu) -> None:
        with pytest.raises(OrderNotFound):
            await order_flow.mark_paid(db, "missing", "Aibek")


class TestConfirmPayment:
    async def test_confirms_pending_order(self, db, place, sent) -> None:
        order = await place("bank")
        await order_flow.mark_paid(db, order.id, "Aibek")

        updated = await order_flow.confirm_payment(db, order.id)

        assert updated.status == S.confirmed
        assert sent == [S.pending_confirmation, S.confirmed]

    async def test_confirm_is_idempotent(self, db, place, sent) -> None:
        order = await place("cash")

        updated = await order_flow.confirm_payment(db, order.id)

        assert updated.status == S.confirmed
        assert sent == []

    async def test_confirm_after_delivery_is_noop(self, db, place, sent) -> None:
        order = await place("cash")
        await order_flow.deliver_order(db, order.id)

        updated = await order_flow.confirm_payment(db, order.id)

        assert updated.status == S.delivered
        assert sent == [S.delivered]

    async def test_canceled_order(self, db, place, sent) -> None:
        order = await place("bank")
        await order_flow.customer_cancel_order(db, order.id)

        with pytest.raises(OrderCanceled):
            await order_flow.confirm_payment(db, order.id)


class TestAdvance:
    async def test_kitchen_progress(self, db, place, sent) -> None:
        order = await place("cash")

        cooking = await order_flow.advance_order(db, order.id, S.cooking)
        delivering = await order_flow.advance_order(db, order.id, S.delivering)
        delivered = await order_flow.deliver_order(db, order.id)

        assert (cooking.status, delivering.status, delivered.status) == (S.cooking, S.delivering, S.delivered)
        assert sent == [S.cooking, S.delivering, S.delivered]

    async def test_skip_cooking(self, db, place, sent) -> None:
        order = await place("cash")
        updated = await order_flow.advance_order(db, order.id, S.delivering)
        assert updated.status == S.delivering

    async def test_same_status_is_noop(self, db, place, sent) -> None:
        order = await place("cash")
        await order_flow.advance_order(db, order.id, S.cooking)

        await order_flow.advance_order(db, order.id, S.cooking)

        assert sent == [S.cooking]

    async def test_unpaid_order(self, db, place) -> None:
        order = await place("bank")
        with pytest.raises(PaymentNotConfirmed):
            await order_flow.advance_order(db, order.id, S.cooking)

    async def test_no_way_back(self, db, place, sent) -> None:
        order = await place("cash")
        await order_flow.advance_order(db, order.id, S.delivering)

        with pytest.raises(InvalidTransition):
            await order_flow.advance_order(db, order.id, S.cooking)

    async def test_target_must_be_kitchen_status(self, db, place) -> None:
        order = await place("cash")
        with pytest.raises(InvalidTransition):
            await order_flow.advance_order(db, order.id, S.delivered)


class TestDeliver:
    async def test_deliver_is_idempotent(self, db, place, sent) -> None:
        order = await place("cash")
        await order_flow.deliver_order(db, order.id)

        again = await order_flow.deliver_order(db, order.id)

        assert again.status == S.delivered
        assert sent == [S.delivered]

    @pytest.mark.parametrize("pending", [False, True])
    async def test_unpaid_order(self, db, place, sent, pending) -> None:
        order = await place("bank")
        if pending:
            await order_flow.mark_paid(db, order.id, "Aibek")

        with pytest.raises(PaymentNotConfirmed):
            await order_flow.deliver_order(db, order.id)

    async def test_canceled_order(self, db, place, sent) -> None:
        order = await place("cash")
        await order_flow.admin_cancel_order(db, order.id, "out of rice")

        with pytest.raises(OrderCanceled):
            await order_flow.deliver_order(db, order.id)


class TestAdminCancel:
    async def test_reason_required(self, db, place, sent) -> None:
        order = await place("cash")
        with pytest.raises(ReasonRequired):
            await order_flow.admin_cancel_order(db, order.id, "   ")

        reread = await crud.get_order_by_id(db, order.id)
        assert reread.status == S.confirmed
        assert sent == []

    async def test_reason_checked_before_lookup(self, db, menu) -> None:
        with pytest.raises(ReasonRequired):
            await order_flow.admin_cancel_order(db, "missing", None)

    @pytest.mark.parametrize("payment_method", ["bank", "cash"])
    async def test_cancels_open_order(self, db, place, sent, payment_method) -> None:
        order = await place(payment_method)

        updated = await order_flow.admin_cancel_order(db, order.id, "  out of rice  ")

        assert updated.status == S.canceled
        assert updated.canceled_reason == "out of rice"
        assert sent == [S.canceled]

    async def test_rejects_unconfirmed_transfer(self, db, place, sent) -> None:
        order = await place("bank")
        await order_flow.mark_paid(db, order.id, "Aibek")

        updated = await order_flow.admin_cancel_order(db, order.id, "transfer not received")

        assert updated.status == S.canceled
        assert sent == [S.pending_confirmation, S.canceled]

    async def test_long_reason_is_truncated(self, db, place, sent) -> None:
        order = await place("cash")
        updated = await order_flow.admin_cancel_order(db, order.id, "x" * 500)
        assert len(updated.canceled_reason) == 300

    async def test_delivered_cannot_be_canceled(self, db, place, sent) -> None:
        order = await place("cash")
        await order_flow.deliver_order(db, order.id)

        with pytest.raises(AlreadyDelivered):
            await order_flow.admin_cancel_order(db, order.id, "late")

    async def test_second_cancel_rejected(self, db, place, sent) -> None:
        order = await place("cash")
        await order_flow.admin_cancel_order(db, order.id, "closed")

        with pytest.raises(OrderCanceled):
            await order_flow.admin_cancel_order(db, order.id, "closed again")


class TestCustomerCancel:
    async def test_soft_cancel_keeps_order(self, db, place, sent, order_count) -> None:
        order = await place("bank")

        updated = await order_flow.customer_cancel_order(db, order.id)

        assert updated.status == S.canceled
        assert updated.canceled_reason is None
        assert await order_count() == 1
        assert sent == [S.canceled]

    async def test_repeat_cancel_is_noop(self, db, place, sent) -> None:
        order = await place("bank")
        await order_flow.customer_cancel_order(db, order.id, "changed my mind")

        again = await order_flow.customer_cancel_order(db, order.id)

        assert again.status == S.canceled
        assert again.canceled_reason == "changed my mind"
        assert sent == [S.canceled]

    async def test_delivered_cannot_be_canceled(self, db, place, sent) -> None:
        order = await place("cash")
        await order_flow.deliver_order(db, order.id)

        with pytest.raises(AlreadyDelivered):
            await order_flow.customer_cancel_order(db, order.id)


class TestNotificationFailure:
    async def test_push_error_does_not_undo_transition(self, db, place, monkeypatch) -> None:
        async def boom(*args, **kwargs):
            raise RuntimeError("push backend down")

        monkeypatch.setattr(order_flow, "send_order_status_push", boom)
        order = await place("bank")

        updated = await order_flow.mark_paid(db, order.id, "Aibek")
        reread = await crud.get_order_by_id(db, order.id)

        assert updated.status == S.pending_confirmation
        assert reread.status == S.pending_confirmation

    async def test_storage_error_in_dispatch_leaves_session_usable(self, db, place, monkeypatch) -> None:
        async def broken_storage(db, order_id, status, config=None):
            # без ключей: NOT NULL на p256dh/auth
            db.add(PushSubscription(order_id=order_id, endpoint="https://push.example/broken"))
            await db.flush()

        monkeypatch.setattr(order_flow, "send_order_status_push", broken_storage)
        order = await place("bank")

        updated = await order_flow.mark_paid(db, order.id, "Aibek")

        assert updated.status == S.pending_confirmation
        assert await push_service.list_push_subscriptions(db, order.id) == []


class TestConcurrentMarkPaid:
    async def test_parallel_submissions_notify_once(self, db, place, sent, session_maker, monkeypatch) -> None:
        order = await place("bank")
        load = order_flow._load
        raced = []

        async def load_then_race(session, order_id):
            loaded = await load(session, order_id)
            if not raced:
                raced.append(order_id)
                # второй "я оплатил" успевает между чтением и записью первого
                async with session_maker() as other:
                    await order_flow.mark_paid(other, order_id, "Aibek")
            return loaded

        monkeypatch.setattr(order_flow, "_load", load_then_race)

        updated = await order_flow.mark_paid(db, order.id, "Aibek Kadyrov")

        assert updated.status == S.pending_confirmation
        assert updated.payer_name == "Aibek Kadyrov"
        assert sent == [S.pending_confirmation]
