"""
PayoutCycleProcessor: one sequential pass over the investments collection.
"""

from datetime import datetime, timedelta, timezone
from dataclasses import asdict
from typing import Any, Callable, Dict, Optional

import structlog

from roi_payouts.core.config import Settings, settings
from roi_payouts.core.exceptions import ProcessorError
from ..catalog import PlanCatalog
from ..records.schema import CYCLE_LENGTH, RecordRejection
from ..records.validation import validate_record
from ..store.base import RecordStore
from .decision import decide
from .types import PayoutDecision, PayoutOutcome, ProcessorStats, ProcessorStatus, TimeGate


logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PayoutCycleProcessor:
    """
    Daily ROI payout processor.

    Flow:
    1. Load the plan catalog (when enabled)
    2. Fetch every record of the investments collection once
    3. For each record in turn: validate, decide, persist, log
    4. Log a run summary

    Records are independent: a failure on one is logged and counted and
    the scan moves on. Concurrent runs against the same collection are
    not guarded against.
    """

    def __init__(
        self,
        store: RecordStore,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.logger = logger.bind(service="payout_cycle_processor")
        self.store = store
        self.config = config or settings
        self.clock = clock or _utcnow

        self.time_gate: Optional[TimeGate] = None
        if self.config.time_gate_enabled:
            self.time_gate = TimeGate(
                period=timedelta(hours=self.config.time_gate_hours),
                grace=timedelta(minutes=self.config.time_gate_grace_minutes),
            )

        # State
        self.status = ProcessorStatus.IDLE
        self.stats = ProcessorStats()

        self.logger.info(
            "PayoutCycleProcessor initialized",
            investments=self.config.investments_collection,
            profiles=self.config.profiles_collection,
            plans=self.config.plans_collection if self.config.plan_catalog_enabled else None,
            rate_unit=self.config.rate_unit,
            time_gate=self.time_gate is not None,
        )

    async def run(self) -> ProcessorStats:
        """
        Run one full payout pass.

        Returns:
            ProcessorStats for the run

        Raises:
            ProcessorError: If a run is already in progress
            Exception: Whatever aborted the run before or during the scan
        """
        if self.status == ProcessorStatus.RUNNING:
            raise ProcessorError("Payout run already in progress")

        self.status = ProcessorStatus.RUNNING
        run_at = self.clock()
        self.stats = ProcessorStats(start_time=run_at)

        try:
            self.logger.info("Daily payout run started", run_at=run_at.isoformat())

            catalog = PlanCatalog()
            if self.config.plan_catalog_enabled:
                catalog = await PlanCatalog.load(self.store, self.config.plans_collection)
            self.stats.plans_loaded = len(catalog)

            documents = await self.store.fetch_all(self.config.investments_collection)
            self.stats.total_records_found = len(documents)

            if not documents:
                self.logger.info(
                    "No investment records found",
                    collection=self.config.investments_collection
                )

            for record_id, data in documents:
                decision = await self.process_record(record_id, data, catalog, run_at)
                self.stats.record(decision)

            self._finish()
            self.status = ProcessorStatus.COMPLETED

            self.logger.info(
                "Daily payout run completed",
                records=self.stats.total_records_found,
                processed=self.stats.processed,
                skipped=self.stats.skipped,
                failed=self.stats.failed,
                total_paid=f"{self.stats.total_paid:.2f}",
                total_time=f"{self.stats.total_processing_time:.2f}s"
            )
            return self.stats

        except Exception as e:
            self._finish()
            self.status = ProcessorStatus.FAILED
            self.logger.error(
                "Daily payout run failed",
                error=str(e),
                processed=self.stats.processed,
                skipped=self.stats.skipped,
                failed=self.stats.failed,
                exc_info=True
            )
            raise

    def _finish(self) -> None:
        self.stats.end_time = self.clock()
        if self.stats.start_time:
            self.stats.total_processing_time = (
                self.stats.end_time - self.stats.start_time
            ).total_seconds()

    async def process_record(
        self,
        record_id: str,
        data: Dict[str, Any],
        catalog: PlanCatalog,
        run_at: datetime,
    ) -> PayoutDecision:
        """Validate, decide and persist one record. Never raises."""
        try:
            result = validate_record(record_id, data, catalog, self.config.rate_unit)
            if isinstance(result, RecordRejection):
                self.logger.warning(
                    "Skipping invalid investment record",
                    record_id=record_id,
                    reason=result.reason
                )
                return PayoutDecision(
                    record_id=record_id,
                    outcome=PayoutOutcome.SKIPPED_INVALID,
                    reason=result.reason,
                )

            for warning in result.warnings:
                self.logger.warning("Coerced record value", record_id=record_id, detail=warning)

            decision = decide(result, run_at, self.time_gate)
            if decision.has_updates:
                await self._persist(decision)

        except Exception as e:
            self.logger.error(
                "Failed to process investment record",
                record_id=record_id,
                error=str(e),
                exc_info=True
            )
            return PayoutDecision(
                record_id=record_id,
                outcome=PayoutOutcome.FAILED,
                reason=str(e),
            )

        self._log_decision(decision, result)
        return decision

    async def _persist(self, decision: PayoutDecision) -> None:
        await self.store.update(
            self.config.investments_collection,
            decision.record_id,
            decision.record_updates
        )

        if decision.profile_id and decision.profile_updates:
            try:
                await self.store.update(
                    self.config.profiles_collection,
                    decision.profile_id,
                    decision.profile_updates
                )
            except Exception as e:
                raise ProcessorError(
                    f"record updated but profile {decision.profile_id} was not: {e}",
                    {"record_id": decision.record_id, "profile_id": decision.profile_id}
                ) from e

    def _log_decision(self, decision: PayoutDecision, record) -> None:
        outcome = decision.outcome

        if outcome.is_skip:
            self.logger.info(
                "Skipping investment record",
                record_id=decision.record_id,
                outcome=outcome.value,
                reason=decision.reason
            )
            return

        if outcome == PayoutOutcome.CORRECTED:
            self.logger.warning(
                "Marked stale record as completed",
                record_id=decision.record_id,
                reason=decision.reason,
                profile_id=decision.profile_id
            )
            return

        messages = {
            PayoutOutcome.PAID: "Payout applied",
            PayoutOutcome.COMPLETED: "Payout applied, cycle completed",
            PayoutOutcome.RESTARTED: "Payout applied, new cycle started",
        }
        self.logger.info(
            messages[outcome],
            record_id=decision.record_id,
            plan=record.plan_name or record.plan_id,
            day=f"{record.days_completed + 1}/{CYCLE_LENGTH}",
            daily_rate=f"{record.daily_rate_percent:.2f}%",
            payout=f"{decision.payout:.2f}",
            profile_id=decision.profile_id
        )

    def get_status(self) -> Dict[str, Any]:
        """Get current processor status and statistics."""
        return {
            "status": self.status.value,
            "stats": asdict(self.stats),
            "config": {
                "investments_collection": self.config.investments_collection,
                "profiles_collection": self.config.profiles_collection,
                "plans_collection": self.config.plans_collection,
                "plan_catalog_enabled": self.config.plan_catalog_enabled,
                "rate_unit": self.config.rate_unit,
                "time_gate_enabled": self.time_gate is not None,
            }
        }
