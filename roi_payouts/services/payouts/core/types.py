"""
Types for payout cycle processing.
"""

from datetime import datetime, timedelta
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from ..store.base import FieldUpdates


class ProcessorStatus(Enum):
    """Status of the payout processor."""
    IDLE = "idle"
    RUNNING = "running"
    FAILED = "failed"
    COMPLETED = "completed"


class PayoutOutcome(Enum):
    """What the processor decided for one record."""
    PAID = "paid"
    COMPLETED = "completed"
    RESTARTED = "restarted"
    CORRECTED = "corrected"
    SKIPPED_INVALID = "skipped_invalid"
    SKIPPED_INACTIVE = "skipped_inactive"
    SKIPPED_TOO_SOON = "skipped_too_soon"
    SKIPPED_COMPLETED = "skipped_completed"
    FAILED = "failed"

    @property
    def is_skip(self) -> bool:
        return self.value.startswith("skipped_")

    @property
    def is_payout(self) -> bool:
        return self in (PayoutOutcome.PAID, PayoutOutcome.COMPLETED, PayoutOutcome.RESTARTED)


@dataclass(frozen=True)
class TimeGate:
    """Minimum elapsed time between two payouts of the same record."""
    period: timedelta = timedelta(hours=24)
    grace: timedelta = timedelta(minutes=5)

    @property
    def minimum_elapsed(self) -> timedelta:
        return self.period - self.grace


@dataclass
class PayoutDecision:
    """Decision for one record plus the field updates that carry it out."""
    record_id: str
    outcome: PayoutOutcome
    reason: Optional[str] = None
    payout: Decimal = Decimal("0.00")
    days_completed: Optional[int] = None
    record_updates: FieldUpdates = field(default_factory=dict)
    profile_id: Optional[str] = None
    profile_updates: FieldUpdates = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    @property
    def has_updates(self) -> bool:
        return bool(self.record_updates or self.profile_updates)


@dataclass
class ProcessorStats:
    """Statistics for one processor run."""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_records_found: int = 0
    plans_loaded: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    total_paid: Decimal = Decimal("0.00")
    total_processing_time: float = 0.0
    outcomes: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def record(self, decision: PayoutDecision) -> None:
        """Count one record's final outcome."""
        key = decision.outcome.value
        self.outcomes[key] = self.outcomes.get(key, 0) + 1

        if decision.outcome == PayoutOutcome.FAILED:
            self.failed += 1
            self.errors.append(f"{decision.record_id}: {decision.reason}")
        elif decision.outcome.is_skip:
            self.skipped += 1
        else:
            self.processed += 1
            if decision.outcome.is_payout:
                self.total_paid += decision.payout

    def count(self, outcome: PayoutOutcome) -> int:
        return self.outcomes.get(outcome.value, 0)

    @property
    def success_rate(self) -> float:
        attempted = self.processed + self.failed
        if attempted == 0:
            return 0.0
        return self.processed / attempted
