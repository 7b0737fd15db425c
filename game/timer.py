import asyncio
import time
from typing import Callable, Optional


class RoundTimer:
    """
    Таймер раунда поверх loop.call_later.
    cancel() снимает отложенный вызов, а не просто игнорирует его.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self.clock = clock
        self._handle: Optional[asyncio.TimerHandle] = None
        self.started_at: float = 0.0

    def start(self, limit_sec: Optional[float], on_expire: Callable[[], None]) -> None:
        self.cancel()
        self.started_at = self.clock()
        if limit_sec is None:
            return
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(limit_sec, self._fire, on_expire)

    def elapsed(self) -> float:
        return max(0.0, self.clock() - self.started_at)

    def is_armed(self) -> bool:
        return self._handle is not None

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, on_expire: Callable[[], None]) -> None:
        self._handle = None
        on_expire()
