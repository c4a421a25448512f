"""
Per-record eligibility and accrual state machine.

    ACTIVE(d) -> ACTIVE(d+1)                    while d+1 < CYCLE_LENGTH
    ACTIVE(CYCLE_LENGTH-1) -> COMPLETED         default
    ACTIVE(CYCLE_LENGTH-1) -> ACTIVE(0)         action == restart
    ACTIVE(d >= CYCLE_LENGTH) -> COMPLETED      auto-correction, no payout

``decide`` is pure: it returns the field updates to apply and leaves
persistence to the processor.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..records.coercion import round_money
from ..records.schema import (
    CYCLE_LENGTH,
    InvestmentRecord,
    PayoutAction,
    PayoutLogEntry,
)
from ..store.base import ArrayAppend, Increment
from .types import PayoutDecision, PayoutOutcome, TimeGate


# Linked user profile fields
PROFILE_BALANCE_FIELD = "walletBalance"
PROFILE_DAYS_FIELD = "roiDaysCompleted"
PROFILE_STATUS_FIELD = "earningStatus"


def _completion_updates(record: InvestmentRecord) -> dict:
    return {
        record.path("isActive"): False,
        record.path("status"): "completed",
    }


def _time_gate_reason(record: InvestmentRecord, now: datetime, gate: TimeGate) -> Optional[str]:
    references = [d for d in (record.last_payout_date, record.cycle_start_date) if d is not None]
    if not references:
        return "no lastPayoutDate or cycleStartDate to measure from"

    elapsed = now - max(references)
    if elapsed < gate.minimum_elapsed:
        return f"only {elapsed} since last payout"
    return None


def correct_stale_record(record: InvestmentRecord) -> PayoutDecision:
    """Force a record found past its cycle, but still flagged active, into COMPLETED."""
    decision = PayoutDecision(
        record_id=record.record_id,
        outcome=PayoutOutcome.CORRECTED,
        reason=f"daysCompleted {record.days_completed} >= {CYCLE_LENGTH} while still active",
        days_completed=record.days_completed,
        record_updates=_completion_updates(record),
        warnings=list(record.warnings),
    )
    if record.user_id:
        decision.profile_id = record.user_id
        decision.profile_updates = {PROFILE_STATUS_FIELD: "completed"}
    return decision


def apply_payout(record: InvestmentRecord, now: datetime) -> PayoutDecision:
    """Accrue one day's payout and handle the cycle boundary."""
    payout = round_money(record.principal * record.daily_rate)
    days = record.days_completed + 1
    cumulative = round_money(record.cumulative_return_percent + record.daily_rate_percent)
    current_value = round_money(record.principal * cumulative / Decimal(100))

    entry = PayoutLogEntry(paid_on=now.date(), amount=payout)
    updates = {
        record.path("daysCompleted"): days,
        "accruedBalance": Increment(payout),
        "cumulativeReturnPercent": float(cumulative),
        "currentReturnValue": float(current_value),
        "payoutLog": ArrayAppend(entry.to_document()),
        "lastPayoutDate": now.isoformat(),
    }

    outcome = PayoutOutcome.PAID
    earning_status = "active"
    if days >= CYCLE_LENGTH:
        if record.action == PayoutAction.RESTART:
            outcome = PayoutOutcome.RESTARTED
            days = 0
            updates.update({
                record.path("daysCompleted"): 0,
                record.path("isActive"): True,
                record.path("status"): "active",
                "cycleStartDate": now.isoformat(),
            })
        else:
            outcome = PayoutOutcome.COMPLETED
            earning_status = "completed"
            updates.update(_completion_updates(record))

    decision = PayoutDecision(
        record_id=record.record_id,
        outcome=outcome,
        payout=payout,
        days_completed=days,
        record_updates=updates,
        warnings=list(record.warnings),
    )
    if record.user_id:
        decision.profile_id = record.user_id
        decision.profile_updates = {
            PROFILE_BALANCE_FIELD: Increment(payout),
            PROFILE_DAYS_FIELD: days,
            PROFILE_STATUS_FIELD: earning_status,
        }
    return decision


def decide(
    record: InvestmentRecord,
    now: datetime,
    time_gate: Optional[TimeGate] = None,
) -> PayoutDecision:
    """
    Decide what to do with one validated record.

    Order: stale-state correction, activity gate, optional time gate,
    accrual. The correction runs first so a record past its cycle always
    converges to COMPLETED, even when paused or gated.

    Args:
        record: Validated investment record
        now: Run timestamp (aware, UTC)
        time_gate: Minimum elapsed time between payouts; None disables it
    """
    def skip(outcome: PayoutOutcome, reason: str) -> PayoutDecision:
        return PayoutDecision(
            record_id=record.record_id,
            outcome=outcome,
            reason=reason,
            days_completed=record.days_completed,
            warnings=list(record.warnings),
        )

    if record.cycle_finished:
        if record.flagged_active:
            return correct_stale_record(record)
        return skip(
            PayoutOutcome.SKIPPED_COMPLETED,
            f"cycle already completed ({record.days_completed} days)",
        )

    inactive_reason = record.inactive_reason
    if inactive_reason:
        return skip(PayoutOutcome.SKIPPED_INACTIVE, inactive_reason)

    if time_gate is not None:
        gate_reason = _time_gate_reason(record, now, time_gate)
        if gate_reason:
            return skip(PayoutOutcome.SKIPPED_TOO_SOON, gate_reason)

    return apply_payout(record, now)
