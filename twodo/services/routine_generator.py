"""
Daily routine occurrence generator.

Keeps every active routine materialized a fixed window ahead. The job runs
once at start, then at the next local midnight, then every interval (24h by
default). ``tick`` is a single run and can be called directly; the clock and
the sleep function are injectable so the loop can be driven without timers.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from ..domain.interfaces import Clock
from ..utils.task_tracker import create_tracked_task
from .routine_service import (
    GenerationResult,
    default_clock,
    generate_for_all_active_routines,
)

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = timedelta(hours=24)


def seconds_until_next_midnight(now: datetime) -> float:
    """Elapsed seconds from ``now`` to the following midnight in now's time zone."""
    tomorrow = (now + timedelta(days=1)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    if now.tzinfo is not None:
        # Same-zone subtraction is wall-clock time; compare instants across DST
        tomorrow = tomorrow.astimezone(timezone.utc)
        now = now.astimezone(timezone.utc)
    return max(0.0, (tomorrow - now).total_seconds())


class RoutineGeneratorJob:
    """Background driver for generate_for_all_active_routines."""

    def __init__(
        self,
        generate: Callable[..., Awaitable[GenerationResult]] = generate_for_all_active_routines,
        window_days: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._generate = generate
        self._window_days = window_days
        self._sleep = sleep
        self._clock: Optional[Clock] = None
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> Optional[GenerationResult]:
        """Run one generation pass. Errors are logged, never raised."""
        if self._lock.locked():
            logger.warning("Routine generation already in progress, skipping tick")
            return None

        async with self._lock:
            try:
                logger.info("Generating routine occurrences...")
                result = await self._generate(
                    window_days=self._window_days, clock=self._clock
                )
                logger.info(
                    f"Generated {result.occurrences_generated} occurrences for "
                    f"{result.routines_processed} routines"
                    + (
                        f" ({len(result.routines_failed)} failed)"
                        if result.routines_failed
                        else ""
                    )
                )
                return result
            except Exception as e:
                logger.error(f"Error generating routine occurrences: {e}", exc_info=True)
                return None

    async def _run(self, interval: timedelta) -> None:
        await self.tick()

        delay = seconds_until_next_midnight(self._clock.now())
        logger.info(
            f"Next routine generation scheduled for "
            f"{(self._clock.now() + timedelta(seconds=delay)).isoformat()}"
        )
        while True:
            try:
                await self._sleep(delay)
            except asyncio.CancelledError:
                logger.info("Routine occurrence generator job cancelled")
                raise
            await self.tick()
            delay = interval.total_seconds()

    def start(
        self,
        clock: Optional[Clock] = None,
        interval: timedelta = DEFAULT_INTERVAL,
    ) -> asyncio.Task:
        """Start the background loop on the running event loop."""
        if self.running:
            raise RuntimeError("Routine generator job is already running")
        self._clock = clock or default_clock()
        logger.info("Starting routine occurrence generator job")
        self._task = create_tracked_task(
            self._run(interval), name="routine-occurrence-generator"
        )
        return self._task

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish."""
        if self._task is None:
            return
        task, self._task = self._task, None
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Routine occurrence generator job stopped")
