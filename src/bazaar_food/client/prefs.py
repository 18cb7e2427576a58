"""
Локальное состояние клиента: телефон, адрес, имя плательщика,
история заказов и указатели на текущий заказ.

Все указатели живут в одном объекте ClientPrefs. Куда вернуть клиента
при следующем визите, решает resume_target():
    ожидает оплату > активный заказ > последний известный.
"""
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Tuple

RETENTION_DAYS = 120
RETENTION_SECONDS = RETENTION_DAYS * 24 * 60 * 60
HISTORY_LIMIT = 8

PHONE_KEY = "phone"
LOCATION_KEY = "location"
PAYER_NAME_KEY = "payer_name"
HISTORY_KEY = "order_history"
LAST_ORDER_KEY = "last_order_id"
ACTIVE_ORDER_KEY = "active_order_id"
PENDING_PAY_ORDER_KEY = "pending_pay_order_id"

AWAITING_PAYMENT = {"created", "pending_confirmation"}
TERMINAL = {"delivered", "canceled"}


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str, ttl: float = RETENTION_SECONDS) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Хранилище в памяти со сроком жизни записей."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: Dict[str, Tuple[str, float]] = {}

    def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            self._data.pop(key, None)
            return None
        return value

    def set(self, key: str, value: str, ttl: float = RETENTION_SECONDS) -> None:
        self._data[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(MemoryStore):
    """То же, но переживает перезапуск: каждая запись сразу сбрасывается в JSON-файл."""

    def __init__(self, path, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self.path = Path(path)
        if self.path.exists():
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            self._data = {k: (v[0], float(v[1])) for k, v in raw.items()}

    def _flush(self) -> None:
        self.path.write_text(json.dumps(self._data), encoding="utf-8")

    def set(self, key: str, value: str, ttl: float = RETENTION_SECONDS) -> None:
        super().set(key, value, ttl)
        self._flush()

    def delete(self, key: str) -> None:
        super().delete(key)
        self._flush()


@dataclass(frozen=True)
class ResumeTarget:
    kind: str  # "pay" | "order"
    order_id: str

    @property
    def path(self) -> str:
        return f"/{self.kind}/{self.order_id}"


class ClientPrefs:
    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store if store is not None else MemoryStore()

    def _get_json(self, key: str, fallback):
        raw = self.store.get(key)
        if not raw:
            return fallback
        try:
            return json.loads(raw)
        except ValueError:
            return fallback

    # --- сохранённые поля формы ---

    @property
    def phone(self) -> str:
        return self.store.get(PHONE_KEY) or ""

    @phone.setter
    def phone(self, value: str) -> None:
        self.store.set(PHONE_KEY, value)

    @property
    def location(self) -> Optional[dict]:
        return self._get_json(LOCATION_KEY, None)

    @location.setter
    def location(self, value: dict) -> None:
        self.store.set(LOCATION_KEY, json.dumps(value))

    @property
    def payer_name(self) -> str:
        return self.store.get(PAYER_NAME_KEY) or ""

    @payer_name.setter
    def payer_name(self, value: str) -> None:
        self.store.set(PAYER_NAME_KEY, value)

    # --- история ---

    def order_history(self) -> List[dict]:
        history = self._get_json(HISTORY_KEY, [])
        return history if isinstance(history, list) else []

    def add_order_to_history(self, entry: dict) -> None:
        merged = [entry] + [e for e in self.order_history() if e.get("orderId") != entry.get("orderId")]
        self.store.set(HISTORY_KEY, json.dumps(merged[:HISTORY_LIMIT]))

    def history_ids(self) -> List[str]:
        return [e["orderId"] for e in self.order_history() if e.get("orderId")]

    # --- указатели ---

    @property
    def last_order_id(self) -> Optional[str]:
        value = self.store.get(LAST_ORDER_KEY)
        if value:
            return value
        ids = self.history_ids()
        return ids[0] if ids else None

    @last_order_id.setter
    def last_order_id(self, order_id: str) -> None:
        self.store.set(LAST_ORDER_KEY, order_id)

    @property
    def active_order_id(self) -> Optional[str]:
        return (self.store.get(ACTIVE_ORDER_KEY) or "").strip() or None

    @active_order_id.setter
    def active_order_id(self, order_id: str) -> None:
        self.store.set(ACTIVE_ORDER_KEY, order_id)

    def clear_active_order_id(self, order_id: Optional[str] = None) -> None:
        if order_id is None or self.active_order_id == order_id:
            self.store.delete(ACTIVE_ORDER_KEY)

    @property
    def pending_pay_order_id(self) -> Optional[str]:
        return (self.store.get(PENDING_PAY_ORDER_KEY) or "").strip() or None

    @pending_pay_order_id.setter
    def pending_pay_order_id(self, order_id: str) -> None:
        self.store.set(PENDING_PAY_ORDER_KEY, order_id)

    def clear_pending_pay_order_id(self, order_id: Optional[str] = None) -> None:
        if order_id is None or self.pending_pay_order_id == order_id:
            self.store.delete(PENDING_PAY_ORDER_KEY)

    def resume_target(self) -> Optional[ResumeTarget]:
        if self.pending_pay_order_id:
            return ResumeTarget("pay", self.pending_pay_order_id)
        if self.active_order_id:
            return ResumeTarget("order", self.active_order_id)
        if self.last_order_id:
            return ResumeTarget("order", self.last_order_id)
        return None

    def apply_status(self, order_id: str, payment_method: str, status: str) -> None:
        """
        Единственное место, где статус заказа двигает указатели:
        перевод в ожидании оплаты - на экран оплаты;
        дальше - активный заказ; завершён - только последний известный.
        """
        self.last_order_id = order_id

        if payment_method == "bank" and status in AWAITING_PAYMENT:
            self.pending_pay_order_id = order_id
            self.active_order_id = order_id
            return

        self.clear_pending_pay_order_id(order_id)
        if status in TERMINAL:
            self.clear_active_order_id(order_id)
        else:
            self.active_order_id = order_id
