"""
Background sweeps

Plan expiration runs daily and artifact purge hourly. Each sweep is a
PeriodicTask; a failing run is logged and the loop keeps its schedule.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Run ``func`` every ``interval_seconds`` until stopped.

    The first run happens one interval after start().
    """

    def __init__(self, name: str, interval_seconds: float, func: Callable[[], Awaitable[Any]]):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self.interval_seconds = interval_seconds
        self.func = func
        self._task: Optional[asyncio.Task] = None

        self.runs = 0
        self.failures = 0
        self.last_result: Any = None
        self.last_run_at: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"✅ {self.name} scheduled every {self.interval_seconds:.0f}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f" {self.name} stopped")

    async def run_once(self) -> Any:
        """Run the sweep now. Errors are logged and counted, not raised."""
        self.runs += 1
        self.last_run_at = time.time()
        try:
            self.last_result = await self.func()
            logger.info(f" {self.name} finished: {self.last_result}")
        except Exception as e:
            self.failures += 1
            self.last_result = None
            logger.error(f"❌ {self.name} failed: {e}", exc_info=True)
        return self.last_result

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "running": self.is_running,
            "interval_seconds": self.interval_seconds,
            "runs": self.runs,
            "failures": self.failures,
            "last_result": self.last_result,
            "last_run_at": self.last_run_at,
        }
