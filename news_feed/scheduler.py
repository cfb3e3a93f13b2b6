"""
Refresh Scheduler - Drives refresh cycles and publishes their results.

- One run starts immediately on start(); start() does not wait for it
- Afterwards a run is triggered every interval, measured from start
  (tick n fires at start + n * interval), regardless of run duration
- A successful run publishes its Snapshot; a failed run is logged and
  leaves the store untouched. Failed runs are not retried before the
  next tick.

Overlap: by default a tick that fires while a run is still in flight is
skipped. With allow_overlap=True runs may race each other; the store
keeps whichever complete snapshot was published last.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from .aggregator import NewsAggregator
from .models import CycleRecord, Snapshot
from .store import SnapshotStore


logger = logging.getLogger(__name__)


class RefreshScheduler:
    """
    Single logical timer for refresh cycles.

    Usage:
        scheduler = RefreshScheduler(aggregator, store)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    DEFAULT_INTERVAL_SECONDS = 8 * 60 * 60
    MAX_HISTORY = 100

    def __init__(
        self,
        aggregator: NewsAggregator,
        store: SnapshotStore,
        interval_seconds: Optional[float] = None,
        allow_overlap: bool = False,
    ) -> None:
        self._aggregator = aggregator
        self._store = store
        self.interval_seconds = interval_seconds or self.DEFAULT_INTERVAL_SECONDS
        self.allow_overlap = allow_overlap

        self._running = False
        self._started_at: Optional[float] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._runs: set[asyncio.Task] = set()
        self._in_flight = 0
        self._history: list[CycleRecord] = []

        # Statistics
        self._stats = {
            "runs_started": 0,
            "runs_succeeded": 0,
            "runs_failed": 0,
            "ticks": 0,
            "ticks_skipped": 0,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> int:
        return self._in_flight

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Trigger the startup run and start the interval timer. Returns immediately."""
        if self._running:
            logger.warning("Refresh scheduler already running")
            return

        self._running = True
        self._started_at = asyncio.get_running_loop().time()
        self._spawn_run("startup")
        self._timer_task = asyncio.create_task(self._timer_loop(), name="news-refresh-timer")
        logger.info(f"Refresh scheduler started (interval={self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the timer and cancel any in-flight runs."""
        self._running = False

        tasks = list(self._runs)
        if self._timer_task:
            tasks.append(self._timer_task)
            self._timer_task = None

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Refresh scheduler stopped")

    async def run_once(self) -> Optional[Snapshot]:
        """
        Run one refresh now and wait for it.

        Returns the published Snapshot, or None if the run failed or was
        skipped because another run is in flight.
        """
        if self._in_flight and not self.allow_overlap:
            logger.warning("Refresh already in flight, manual run skipped")
            return None
        return await self._spawn_run("manual")

    # ─────────────────────────────────────────────────────────────
    # Diagnostics
    # ─────────────────────────────────────────────────────────────

    def get_history(self, limit: int = 20) -> list[dict[str, Any]]:
        """Get recent cycle records, oldest first."""
        return [record.to_dict() for record in self._history[-limit:]]

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics."""
        return {
            **self._stats,
            "running": self._running,
            "in_flight": self._in_flight,
            "interval_seconds": self.interval_seconds,
            "allow_overlap": self.allow_overlap,
            "store": self._store.get_status(),
        }

    # ─────────────────────────────────────────────────────────────
    # Internal methods
    # ─────────────────────────────────────────────────────────────

    async def _timer_loop(self) -> None:
        """Fire a tick at every interval boundary since start."""
        loop = asyncio.get_running_loop()
        tick = 0
        while self._running:
            tick += 1
            deadline = self._started_at + tick * self.interval_seconds
            delay = deadline - loop.time()
            try:
                if delay > 0:
                    await asyncio.sleep(delay)
            except asyncio.CancelledError:
                break
            if not self._running:
                break
            self._on_tick(tick)

    def _on_tick(self, tick: int) -> None:
        self._stats["ticks"] += 1
        if self._in_flight and not self.allow_overlap:
            self._stats["ticks_skipped"] += 1
            logger.warning(
                f"Tick {tick}: previous refresh still in flight, skipping"
            )
            return
        self._spawn_run(f"tick-{tick}")

    def _spawn_run(self, trigger: str) -> asyncio.Task:
        # Counted before the task is scheduled so back-to-back spawns see it
        self._in_flight += 1
        task = asyncio.create_task(self._run(trigger))
        self._runs.add(task)
        task.add_done_callback(self._run_finished)
        return task

    def _run_finished(self, task: asyncio.Task) -> None:
        # Also reached for runs cancelled before their first step
        self._runs.discard(task)
        self._in_flight -= 1

    async def _run(self, trigger: str) -> Optional[Snapshot]:
        cycle_id = uuid4().hex[:12]
        record = CycleRecord(cycle_id=cycle_id, started_at=datetime.utcnow())
        self._record(record)
        self._stats["runs_started"] += 1
        logger.debug(f"Refresh {cycle_id} triggered by {trigger}")

        try:
            try:
                snapshot = await self._aggregator.refresh(cycle_id=cycle_id)
                self._store.publish(snapshot)
            except Exception as e:
                self._stats["runs_failed"] += 1
                record.error = str(e)
                logger.error(
                    f"Refresh {cycle_id} ({trigger}) failed, keeping previous snapshot: {e}"
                )
                return None

            self._stats["runs_succeeded"] += 1
            record.success = True
            record.article_count = len(snapshot.latest) + sum(
                len(r.articles) for r in snapshot.related
            )
            record.theme_count = len(snapshot.related)
            return snapshot
        finally:
            record.finished_at = datetime.utcnow()

    def _record(self, record: CycleRecord) -> None:
        self._history.append(record)
        if len(self._history) > self.MAX_HISTORY:
            self._history = self._history[-self.MAX_HISTORY:]
