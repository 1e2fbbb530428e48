# singularity/ticker.py
"""
Asynchronous ticker for periodic storage work.
Subscribers are coroutine functions awaited once per tick with the time
elapsed since the previous tick.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Coroutine, List, Optional

log = logging.getLogger(__name__)

TickCallback = Callable[[float], Coroutine[Any, Any, None]]


class Ticker:
    def __init__(self, interval_seconds: float = 1.0, name: str = "StorageTicker"):
        self.interval_seconds = interval_seconds
        self.name = name
        self._callbacks: List[TickCallback] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, callback: TickCallback) -> bool:
        """Subscribe an async function to be called on each tick."""
        if not asyncio.iscoroutinefunction(callback):
            log.error("Ticker subscription failed: %s is not an async function.", getattr(callback, '__name__', callback))
            return False
        if callback not in self._callbacks:
            self._callbacks.append(callback)
            log.debug("Callback %s subscribed to ticker.", getattr(callback, '__name__', callback))
        return True

    def unsubscribe(self, callback: TickCallback):
        if callback in self._callbacks:
            self._callbacks.remove(callback)
            log.debug("Callback %s unsubscribed from ticker.", getattr(callback, '__name__', callback))

    def start(self) -> bool:
        """Starts the tick loop on the running event loop if it is not already running."""
        if self.is_running:
            log.warning("Ticker task is already running.")
            return False
        if self.interval_seconds <= 0:
            log.error("Ticker interval must be positive. Ticker not started.")
            return False
        log.info("Starting %s with interval: %.2f seconds.", self.name, self.interval_seconds)
        self._task = asyncio.create_task(self._run(), name=self.name)
        return True

    async def stop(self):
        """Cancels the tick loop and waits for it to finish."""
        if not self.is_running:
            self._task = None
            return
        log.info("Stopping %s...", self.name)
        self._task.cancel()
        try:
            await asyncio.wait_for(self._task, timeout=5.0)
        except asyncio.CancelledError:
            log.info("Ticker task successfully cancelled.")
        except asyncio.TimeoutError:
            log.warning("Ticker task did not finish cancelling within timeout.")
        finally:
            self._task = None

    async def tick(self, delta_time: float):
        """Runs every subscriber once. A failing subscriber does not stop the others."""
        callbacks = list(self._callbacks)
        if not callbacks:
            return
        results = await asyncio.gather(*(cb(delta_time) for cb in callbacks), return_exceptions=True)
        for callback, result in zip(callbacks, results):
            if isinstance(result, Exception):
                log.exception("Ticker: Exception in callback '%s': %s",
                              getattr(callback, '__name__', 'unknown callback'), result, exc_info=result)

    async def _run(self):
        last_tick_time = time.monotonic()
        while True:
            try:
                await asyncio.sleep(self.interval_seconds)
                current_time = time.monotonic()
                delta_time = current_time - last_tick_time
                last_tick_time = current_time
                log.debug("Tick. Delta: %.3f s, %d callbacks.", delta_time, len(self._callbacks))
                await self.tick(delta_time)
            except asyncio.CancelledError:
                log.info("Ticker loop cancelled.")
                raise
            except Exception:
                log.exception("Ticker loop encountered unexpected error:")
                await asyncio.sleep(max(5.0, self.interval_seconds))
