"""
Отслеживание заказа на стороне клиента.

OrderTracker опрашивает GET /orders/{id}, пока заказ не завершён,
и держит указатели ClientPrefs в актуальном состоянии.
OrderHistoryPoller независимо подтягивает завершённые заказы для истории.
"""
import enum
import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

import httpx

from .polling import PollingLoop, error_message
from .prefs import AWAITING_PAYMENT, TERMINAL, ClientPrefs

logger = logging.getLogger(__name__)

# статусы, при которых клиент уже считает заказ оплаченным/принятым
PAID_OR_CONFIRMED = {"pending_confirmation", "confirmed", "cooking", "delivering"}
APPROVED = {"confirmed", "cooking", "delivering"}

MIN_PHONE_DIGITS = 7
HISTORY_REQUEST_LIMIT = 30


class TrackerError(Exception):
    pass


class TrackerView(str, enum.Enum):
    loading = "loading"
    missing = "missing"
    waiting = "waiting"
    approved = "approved"
    delivered = "delivered"
    canceled = "canceled"
    admin_rejected = "admin_rejected"


class OrderTracker(PollingLoop):
    interval = 4.0

    def __init__(self, http: httpx.AsyncClient, order_id: str, prefs: ClientPrefs, interval: Optional[float] = None):
        super().__init__(interval)
        self.http = http
        self.order_id = order_id
        self.prefs = prefs
        self.order: Optional[dict] = None
        self.previous_status: Optional[str] = None
        self.view = TrackerView.loading
        self._self_canceled = False

    @property
    def status(self) -> Optional[str]:
        return self.order["status"] if self.order else None

    @property
    def finished(self) -> bool:
        return self.view == TrackerView.missing or self.status in TERMINAL

    @classmethod
    async def place_order(cls, http: httpx.AsyncClient, prefs: ClientPrefs, payload: dict, **kwargs) -> "OrderTracker":
        """
        Оформляет заказ и возвращает трекер для него.
        Телефон и адрес запоминаются для следующего заказа.
        """
        response = await http.post("/orders", json=payload)
        if response.status_code != 200:
            raise TrackerError(error_message(response, "Failed to create order"))
        order_id = response.json()["orderId"]

        prefs.phone = payload.get("customerPhone", "")
        if payload.get("location"):
            prefs.location = payload["location"]
        prefs.add_order_to_history(
            {
                "orderId": order_id,
                "restaurantSlug": payload.get("restaurantSlug", ""),
                "customerPhone": payload.get("customerPhone", ""),
                "createdAt": datetime.now(timezone.utc).isoformat(),
            }
        )
        initial = "confirmed" if payload.get("paymentMethod") == "cash" else "created"
        prefs.apply_status(order_id, payload.get("paymentMethod", "bank"), initial)

        tracker = cls(http, order_id, prefs, **kwargs)
        await tracker.refresh()
        return tracker

    def _derive_view(self, status: str) -> TrackerView:
        if status in AWAITING_PAYMENT:
            return TrackerView.waiting
        if status in APPROVED:
            return TrackerView.approved
        if status == "delivered":
            return TrackerView.delivered
        if status == "canceled":
            if self.view == TrackerView.admin_rejected:
                return self.view
            # отмена, которую клиент не инициировал, после "оплатил"/"подтверждён"
            if not self._self_canceled and self.previous_status in PAID_OR_CONFIRMED:
                return TrackerView.admin_rejected
            return TrackerView.canceled
        return self.view

    def _apply(self, order: dict) -> None:
        status = order["status"]
        if self.order is not None and self.order["status"] != status:
            self.previous_status = self.order["status"]
        self.order = order
        self.view = self._derive_view(status)
        self.prefs.apply_status(order["id"], order.get("paymentMethod", "bank"), status)

    async def tick(self) -> None:
        await self.refresh(silent=True)

    async def refresh(self, silent: bool = False) -> Optional[dict]:
        """
        Перечитывает заказ. Явная загрузка (silent=False) поднимает TrackerError,
        фоновая - молча пропускает неудачу.
        """
        try:
            response = await self.http.get(f"/orders/{self.order_id}")
        except httpx.HTTPError as e:
            if silent:
                logger.debug("Order %s poll failed: %s", self.order_id, e)
                return None
            raise TrackerError(f"Failed to load order: {e}") from e

        if response.status_code == 404:
            self.order = None
            self.view = TrackerView.missing
            # не возвращать клиента к заказу, которого больше нет
            self.prefs.clear_pending_pay_order_id(self.order_id)
            self.prefs.clear_active_order_id(self.order_id)
            return None
        if response.status_code != 200:
            if silent:
                return None
            raise TrackerError(error_message(response, "Failed to load order"))

        self._apply(response.json())
        return self.order

    async def run(self) -> None:
        await self.refresh()
        await super().run()

    async def mark_paid(self, payer_name: str) -> dict:
        response = await self.http.post(f"/orders/{self.order_id}/mark-paid", json={"payerName": payer_name})
        if response.status_code != 200:
            raise TrackerError(error_message(response, "Failed to mark order as paid"))
        self.prefs.payer_name = payer_name.strip()
        await self.refresh(silent=True)
        return response.json()

    async def cancel(self, reason: Optional[str] = None) -> dict:
        self._self_canceled = True
        body = {"reason": reason} if reason else None
        response = await self.http.post(f"/orders/{self.order_id}/cancel", json=body)
        if response.status_code != 200:
            self._self_canceled = False
            raise TrackerError(error_message(response, "Failed to cancel order"))
        await self.refresh(silent=True)
        return response.json()


class OrderHistoryPoller(PollingLoop):
    """Завершённые заказы по id из локальной истории и по сохранённому телефону."""

    interval = 10.0

    def __init__(self, http: httpx.AsyncClient, prefs: ClientPrefs, interval: Optional[float] = None):
        super().__init__(interval)
        self.http = http
        self.prefs = prefs
        self.orders: List[dict] = []

    async def tick(self) -> None:
        await self.load(silent=True)

    async def load(self, silent: bool = False) -> List[dict]:
        ids = self.prefs.history_ids()[:HISTORY_REQUEST_LIMIT]
        phone = re.sub(r"\D", "", self.prefs.phone)

        params = {}
        if ids:
            params["ids"] = ",".join(ids)
        if len(phone) >= MIN_PHONE_DIGITS:
            params["phone"] = phone
        if not params:
            self.orders = []
            return self.orders

        try:
            response = await self.http.get("/orders/history", params=params)
        except httpx.HTTPError as e:
            if silent:
                return self.orders
            raise TrackerError(f"Failed to load history: {e}") from e

        if response.status_code != 200:
            if not silent:
                raise TrackerError(error_message(response, "Failed to load history"))
            self.orders = []
            return self.orders

        orders = response.json().get("orders", [])
        self.orders = [o for o in orders if o.get("status") in TERMINAL]
        return self.orders
