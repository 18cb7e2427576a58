from typing import Optional

from pydantic import constr

from .order import CamelModel


class PushKeys(CamelModel):
    p256dh: constr(strip_whitespace=True, min_length=1)
    auth: constr(strip_whitespace=True, min_length=1)


class PushSubscriptionIn(CamelModel):
    endpoint: constr(strip_whitespace=True, min_length=1)
    # миллисекунды unix-времени, как отдаёт браузер
    expiration_time: Optional[float] = None
    keys: PushKeys


class PushSubscribeRequest(CamelModel):
    order_id: constr(strip_whitespace=True, min_length=1)
    subscription: PushSubscriptionIn


class PushUnsubscribeRequest(CamelModel):
    order_id: Optional[str] = None
    endpoint: constr(strip_whitespace=True, min_length=1)


class PushSubscribeResult(CamelModel):
    ok: bool = True
    push_configured: bool
