"""
Daily payout scheduler.

Runs the payout job once per day at a configured UTC hour inside a
long-running process. An external cron invoking ``roi-payouts run`` is
the equivalent alternative.
"""

import asyncio
from datetime import datetime, timezone, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional
from dataclasses import dataclass, asdict
from enum import Enum

import structlog

from roi_payouts.core.config import Settings, settings
from roi_payouts.core.exceptions import SchedulerError
from roi_payouts.services.payouts.core import ProcessorStats


logger = structlog.get_logger(__name__)

# Minutes after the scheduled hour during which a missed run still fires
RUN_WINDOW_MINUTES = 30


class SchedulerStatus(Enum):
    """Status of the payout scheduler."""
    STOPPED = "stopped"
    WAITING = "waiting"
    PROCESSING = "processing"
    ERROR = "error"


@dataclass
class SchedulerStats:
    """Statistics for scheduler operations."""
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    last_processing_stats: Optional[ProcessorStats] = None
    uptime_start: Optional[datetime] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PayoutScheduler:
    """
    Runs the payout job once a day at ``schedule_utc_hour``.

    The job is awaited inline, so a run never overlaps the next one
    within this process.
    """

    def __init__(
        self,
        job: Optional[Callable[[], Awaitable[ProcessorStats]]] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.logger = logger.bind(service="payout_scheduler")
        self.config = config or settings
        self.clock = clock or _utcnow

        if job is None:
            from roi_payouts.services.payout_job import run_payout_job

            async def job() -> ProcessorStats:
                return await run_payout_job(self.config)

        self.job = job
        self.utc_hour = self.config.schedule_utc_hour
        self.poll_interval = self.config.scheduler_poll_interval

        # State
        self.status = SchedulerStatus.STOPPED
        self.stats = SchedulerStats(uptime_start=self.clock())
        self._should_stop = False
        self._scheduler_task: Optional[asyncio.Task] = None

        self.logger.info(
            "Payout scheduler initialized",
            utc_hour=self.utc_hour,
            poll_interval=self.poll_interval
        )

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    def calculate_next_run_time(self) -> datetime:
        """Calculate the next time payouts should be processed."""
        now = self.clock()
        next_run = now.replace(
            hour=self.utc_hour,
            minute=0,
            second=0,
            microsecond=0
        )

        # If the time has already passed today, schedule for tomorrow
        if next_run <= now:
            next_run += timedelta(days=1)

        return next_run

    def should_run(self) -> bool:
        """Check whether the daily slot is open and not yet used today."""
        now = self.clock()

        if now.hour != self.utc_hour or now.minute >= RUN_WINDOW_MINUTES:
            return False

        if self.stats.last_run:
            return self.stats.last_run.date() < now.date()
        return True

    async def start(self):
        """Start the scheduler loop as a background task."""
        if self.status != SchedulerStatus.STOPPED:
            self.logger.warning(
                "Scheduler already running",
                current_status=self.status.value
            )
            return

        self._should_stop = False
        self.status = SchedulerStatus.WAITING
        self.stats.next_run = self.calculate_next_run_time()
        self._scheduler_task = asyncio.create_task(self._scheduler_loop())

        self.logger.info(
            "Payout scheduler started",
            next_run=self.stats.next_run.isoformat()
        )

    async def stop(self):
        """Stop the scheduler loop."""
        if self.status == SchedulerStatus.STOPPED:
            return

        self.logger.info("Stopping payout scheduler")
        self._should_stop = True

        if self._scheduler_task and not self._scheduler_task.done():
            self._scheduler_task.cancel()
            try:
                await self._scheduler_task
            except asyncio.CancelledError:
                pass

        self.status = SchedulerStatus.STOPPED
        self.logger.info("Payout scheduler stopped")

    async def _scheduler_loop(self):
        self.logger.info("Scheduler loop started")

        while not self._should_stop:
            try:
                if self.should_run():
                    await self.run_scheduled()

                self.stats.next_run = self.calculate_next_run_time()
                await asyncio.sleep(self.poll_interval)

            except asyncio.CancelledError:
                self.logger.info("Scheduler loop cancelled")
                break

        self.logger.info("Scheduler loop stopped")

    async def run_scheduled(self) -> Optional[ProcessorStats]:
        """
        Run the job for today's slot.

        Failures are logged and counted; the next attempt is tomorrow's slot.
        """
        self.status = SchedulerStatus.PROCESSING
        self.stats.total_runs += 1
        # Mark the slot used even if the run fails
        self.stats.last_run = self.clock()

        try:
            processing_stats = await self.job()
        except Exception as e:
            self.stats.failed_runs += 1
            self.status = SchedulerStatus.ERROR
            self.logger.error(
                "Scheduled payout run failed",
                error=str(e),
                total_runs=self.stats.total_runs,
                failed_runs=self.stats.failed_runs,
                exc_info=True
            )
            return None

        self.stats.last_processing_stats = processing_stats
        self.stats.successful_runs += 1
        self.status = SchedulerStatus.WAITING

        self.logger.info(
            "Scheduled payout run completed",
            processed=processing_stats.processed,
            skipped=processing_stats.skipped,
            failed=processing_stats.failed
        )
        return processing_stats

    async def trigger_manual_run(self) -> ProcessorStats:
        """
        Manually trigger payout processing outside the daily slot.

        Raises:
            SchedulerError: If a run is already in progress
        """
        if self.status == SchedulerStatus.PROCESSING:
            raise SchedulerError("Payout processing already in progress")

        self.logger.info("Manual payout processing triggered")

        old_status = self.status
        self.status = SchedulerStatus.PROCESSING

        try:
            processing_stats = await self.job()
            self.stats.last_processing_stats = processing_stats
            self.stats.total_runs += 1
            self.stats.successful_runs += 1
            return processing_stats

        except Exception as e:
            self.stats.failed_runs += 1
            self.logger.error("Manual payout processing failed", error=str(e))
            raise
        finally:
            self.status = old_status

    def get_status(self) -> Dict[str, Any]:
        """Get current scheduler status."""
        return {
            "status": self.status.value,
            "utc_hour": self.utc_hour,
            "stats": asdict(self.stats),
            "next_run": self.stats.next_run.isoformat() if self.stats.next_run else None
        }
