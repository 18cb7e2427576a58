import logging
from typing import List, Optional

import httpx

from .polling import PollingLoop, error_message
from .prefs import TERMINAL

logger = logging.getLogger(__name__)


class AdminActionError(Exception):
    """Ошибка действия в панели; текст - как его вернул сервер."""


class CancelReasonMissing(AdminActionError):
    def __init__(self):
        super().__init__("Cancel reason is required")


class AdminOrderConsole(PollingLoop):
    """
    Панель заказов: список с опросом раз в секунду и действия
    подтвердить / доставить / отменить.
    http должен быть настроен на Basic-авторизацию администратора.
    """

    interval = 1.0

    def __init__(self, http: httpx.AsyncClient, interval: Optional[float] = None):
        super().__init__(interval)
        self.http = http
        self.orders: List[dict] = []
        self.load_error: Optional[str] = None

    @property
    def active_orders(self) -> List[dict]:
        # заказ по переводу показываем, только когда клиент указал плательщика
        return [
            o for o in self.orders
            if o["status"] not in TERMINAL
            and (o.get("paymentMethod") == "cash" or (o.get("payerName") or "").strip())
        ]

    @property
    def history_orders(self) -> List[dict]:
        return [o for o in self.orders if o["status"] in TERMINAL]

    async def tick(self) -> None:
        await self.refresh(silent=True)

    async def refresh(self, silent: bool = False) -> List[dict]:
        try:
            response = await self.http.get("/admin/orders")
        except httpx.HTTPError as e:
            self.load_error = str(e)
            if silent:
                return self.orders
            raise AdminActionError(f"Failed to load orders: {e}") from e

        if response.status_code != 200:
            self.load_error = error_message(response, f"Failed to load orders ({response.status_code})")
            if silent:
                return self.orders
            raise AdminActionError(self.load_error)

        self.orders = response.json().get("orders", [])
        self.load_error = None
        return self.orders

    async def _action(self, order_id: str, action: str, body: Optional[dict] = None) -> dict:
        response = await self.http.post(f"/admin/orders/{order_id}/{action}", json=body)
        if response.status_code != 200:
            raise AdminActionError(error_message(response, "Operation failed"))
        await self.refresh(silent=True)
        return response.json()

    async def confirm(self, order_id: str) -> dict:
        return await self._action(order_id, "confirm")

    async def deliver(self, order_id: str) -> dict:
        return await self._action(order_id, "deliver")

    async def cancel(self, order_id: str, reason: str) -> dict:
        """Без причины запрос даже не отправляется."""
        reason = (reason or "").strip()
        if not reason:
            raise CancelReasonMissing()
        return await self._action(order_id, "cancel", {"reason": reason})
