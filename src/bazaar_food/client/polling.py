import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


def error_message(response: httpx.Response, fallback: str) -> str:
    """Текст ошибки из ответа API ({"error": ...}) или fallback."""
    try:
        payload = response.json()
    except ValueError:
        return fallback
    if isinstance(payload, dict):
        message = payload.get("error") or payload.get("detail")
        if isinstance(message, str) and message:
            return message
    return fallback


class PollingLoop:
    """
    Таймерный опрос с внеочередным обновлением (фокус, видимость, online).

    Тик не запускается, пока не завершился предыдущий запрос этого же цикла.
    Ошибки фоновых тиков глотаются: следующий тик всё починит.
    """

    interval: float = 4.0

    def __init__(self, interval: Optional[float] = None):
        if interval is not None:
            self.interval = interval
        self._wake = asyncio.Event()
        self._stopped = False
        self._inflight = False

    @property
    def finished(self) -> bool:
        return False

    async def tick(self) -> None:
        raise NotImplementedError

    async def _silent_tick(self) -> None:
        if self._inflight:
            return
        self._inflight = True
        try:
            await self.tick()
        except httpx.HTTPError as e:
            logger.debug("%s poll failed: %s", type(self).__name__, e)
        finally:
            self._inflight = False

    def poke(self) -> None:
        """Событие focus/visibilitychange/online: обновить сейчас."""
        self._wake.set()

    def stop(self) -> None:
        self._stopped = True
        self._wake.set()

    async def run(self) -> None:
        while not self._stopped and not self.finished:
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()
            if self._stopped:
                break
            await self._silent_tick()
