"""
Debounce timer for the search box.

Coalesces bursts of query changes into a single delayed call. Arming a new
timer always cancels the previous one first, so at most one timer is live.
"""
import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DebounceController:
    def __init__(self, delay: float, on_fire: Callable[[str], None]):
        """
        Args:
            delay: Seconds to wait after the last arm() before firing
            on_fire: Called with the latest text once the delay elapses uninterrupted
        """
        self.delay = delay
        self._on_fire = on_fire
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self, text: str) -> None:
        """Cancel any pending timer and schedule a new one for `text`."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(text))
        logger.debug("Debounce armed for %r (%.3fs)", text, self.delay)

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug("Debounce timer cancelled")
        self._task = None

    async def wait(self) -> None:
        """Wait for the pending timer (if any) to fire or be cancelled."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def _run(self, text: str) -> None:
        await asyncio.sleep(self.delay)
        # Drop our own reference before firing so on_fire may re-arm.
        self._task = None
        self._on_fire(text)
