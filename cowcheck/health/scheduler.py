"""Health check scheduler — runs evaluation passes at a fixed interval.

A pass evaluates every registered check, then recomputes node health.
The first pass runs as soon as the scheduler starts; after that one pass
per tick until stop(). Probes block on network / Docker calls, so each
check runs in a thread pool to keep the event loop free for HTTP traffic.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

from .checks import Check
from .state import NodeHealth

logger = logging.getLogger(__name__)


class HealthScheduler:
    """Drives NodeHealth's checks from a single asyncio task.

    Lifecycle:
        scheduler = HealthScheduler(node_health, interval=10)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        node_health: NodeHealth,
        interval: float = 10.0,
        max_workers: int = 4,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval}")
        self.node_health = node_health
        self.interval = interval
        self.max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self.passes = 0

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Freeze the registry and start polling."""
        if self._running:
            return
        self._running = True
        self.node_health.registry.freeze()
        self._task = asyncio.create_task(self._poll_loop(), name="cowcheck-poller")
        logger.info(
            "Health scheduler started: %d checks every %ss",
            len(self.node_health.registry), self.interval,
        )

    async def stop(self) -> None:
        """Cancel the poll loop and release the worker threads."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None
        logger.info("Health scheduler stopped")

    async def run_pass_now(self) -> bool:
        """Evaluate every check once and re-aggregate. Returns the new node health."""
        loop = asyncio.get_running_loop()
        checks = list(self.node_health.registry)
        executor = self._get_executor()
        results = await asyncio.gather(
            *(loop.run_in_executor(executor, check.evaluate) for check in checks),
            return_exceptions=True,
        )
        for check, result in zip(checks, results):
            if isinstance(result, BaseException):
                self._contain(check, result)

        self.passes += 1
        return self.node_health.aggregate()

    def _get_executor(self) -> ThreadPoolExecutor:
        """Worker pool for probes; a fresh one after every stop()."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="cowcheck",
            )
        return self._executor

    def _contain(self, check: Check, error: BaseException) -> None:
        logger.error(
            "Check %s escaped its own error handling",
            check.name, exc_info=(type(error), error, error.__traceback__),
        )
        check.mark_failed(f"Unhandled {type(error).__name__}: {error}")

    async def _poll_loop(self) -> None:
        """Immediate first pass, then one pass per tick. Missed ticks are dropped."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while self._running:
            try:
                healthy = await self.run_pass_now()
                logger.debug("Evaluation pass %d done: healthy=%s", self.passes, healthy)
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Evaluation pass failed")

            next_tick += self.interval
            now = loop.time()
            if next_tick < now:
                logger.warning("Evaluation pass overran the %ss interval", self.interval)
                next_tick = now + self.interval
            try:
                await asyncio.sleep(next_tick - now)
            except asyncio.CancelledError:
                break
