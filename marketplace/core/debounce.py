"""Cancel-and-reschedule debouncing, scoped to one owner."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Run ``func`` only for the last call made within ``delay`` seconds.

    Each owner (a form, a websocket connection) creates its own instance;
    nothing is shared between owners. ``cancel`` drops the pending call.
    """

    def __init__(self, delay: float, func: Callable[..., Awaitable[Any]]):
        self.delay = delay
        self.func = func
        self._task: Optional[asyncio.Task] = None

    def call(self, *args, **kwargs) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(args, kwargs))

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    async def wait(self) -> None:
        """Wait for the scheduled call, if any, to finish."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def _run(self, args, kwargs) -> None:
        await asyncio.sleep(self.delay)
        try:
            await self.func(*args, **kwargs)
        except Exception:
            logger.exception("Debounced call failed")
