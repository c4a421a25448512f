"""
Test the per-record payout state machine.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from roi_payouts.services.payouts.core import PayoutOutcome, TimeGate, decide
from roi_payouts.services.payouts.records import CYCLE_LENGTH, validate_record
from roi_payouts.services.payouts.store import ArrayAppend, Increment

from .conftest import RUN_AT, active_investment


def _decide(document, time_gate=None, rate_unit="percent"):
    record = validate_record("inv-1", document, rate_unit=rate_unit)
    return decide(record, RUN_AT, time_gate)


def test_first_day_payout():
    decision = _decide(active_investment())

    assert decision.outcome == PayoutOutcome.PAID
    assert decision.payout == Decimal("40.00")
    assert decision.days_completed == 1
    assert decision.record_updates == {
        "daysCompleted": 1,
        "accruedBalance": Increment(40.0),
        "cumulativeReturnPercent": 4.0,
        "currentReturnValue": 40.0,
        "payoutLog": ArrayAppend({"date": "2026-10-18", "amount": 40.0, "status": "paid"}),
        "lastPayoutDate": RUN_AT.isoformat(),
    }
    assert decision.profile_id is None
    assert decision.profile_updates == {}


def test_fraction_rate_gives_same_payout():
    decision = _decide(active_investment(dailyRate=0.04), rate_unit="fraction")

    assert decision.payout == Decimal("40.00")


def test_payout_is_rounded_half_up():
    decision = _decide(active_investment(initialAmount=333.33, dailyRate=1.5))

    # 333.33 * 0.015 = 4.99995
    assert decision.payout == Decimal("5.00")


def test_cumulative_percent_and_value_accumulate():
    decision = _decide(active_investment(daysCompleted=2, cumulativeReturnPercent=8))

    assert decision.record_updates["cumulativeReturnPercent"] == 12.0
    assert decision.record_updates["currentReturnValue"] == 120.0


def test_last_day_completes_cycle():
    decision = _decide(active_investment(daysCompleted=CYCLE_LENGTH - 1))

    assert decision.outcome == PayoutOutcome.COMPLETED
    assert decision.days_completed == CYCLE_LENGTH
    assert decision.record_updates["daysCompleted"] == CYCLE_LENGTH
    assert decision.record_updates["isActive"] is False
    assert decision.record_updates["status"] == "completed"


def test_last_day_with_restart_begins_new_cycle():
    decision = _decide(active_investment(daysCompleted=CYCLE_LENGTH - 1, action="restart"))

    assert decision.outcome == PayoutOutcome.RESTARTED
    assert decision.payout == Decimal("40.00")
    assert decision.days_completed == 0
    assert decision.record_updates["daysCompleted"] == 0
    assert decision.record_updates["isActive"] is True
    assert decision.record_updates["status"] == "active"
    assert decision.record_updates["cycleStartDate"] == RUN_AT.isoformat()


@pytest.mark.parametrize("overrides", [
    {"isActive": False, "status": None},
    {"isActive": False, "status": "completed", "daysCompleted": 3},
    {"status": "pending", "isActive": None},
    {"action": "paused"},
    {"action": "stopped"},
])
def test_inactive_records_are_skipped(overrides):
    decision = _decide(active_investment(**overrides))

    assert decision.outcome == PayoutOutcome.SKIPPED_INACTIVE
    assert not decision.has_updates


def test_inactive_account_flag_on_nested_plan():
    decision = _decide({
        "isActive": False,
        "activePlan": {"amount": 100, "roiPercent": 4, "isActive": True, "status": "active"},
    })

    assert decision.outcome == PayoutOutcome.SKIPPED_INACTIVE
    assert decision.reason == "account flag is inactive"


@pytest.mark.parametrize("overrides", [
    {"daysCompleted": CYCLE_LENGTH},
    {"daysCompleted": CYCLE_LENGTH + 3, "action": "paused"},
    {"daysCompleted": CYCLE_LENGTH, "status": "completed"},
    {"daysCompleted": CYCLE_LENGTH, "isActive": False, "status": "active"},
])
def test_stale_active_records_are_corrected_without_payout(overrides):
    decision = _decide(active_investment(**overrides), time_gate=TimeGate())

    assert decision.outcome == PayoutOutcome.CORRECTED
    assert decision.payout == Decimal("0.00")
    assert decision.record_updates == {"isActive": False, "status": "completed"}


def test_stale_correction_mirrors_linked_profile():
    decision = _decide(active_investment(daysCompleted=9, userId="user-1"))

    assert decision.profile_id == "user-1"
    assert decision.profile_updates == {"earningStatus": "completed"}


def test_completed_records_are_skipped_silently():
    decision = _decide(active_investment(daysCompleted=CYCLE_LENGTH, isActive=False, status="completed"))

    assert decision.outcome == PayoutOutcome.SKIPPED_COMPLETED
    assert not decision.has_updates


def test_unparseable_rate_pays_zero_but_advances():
    decision = _decide(active_investment(dailyRate="not-a-number", daysCompleted=3))

    assert decision.outcome == PayoutOutcome.PAID
    assert decision.payout == Decimal("0.00")
    assert decision.days_completed == 4
    assert decision.warnings


def test_negative_rate_pays_zero_and_keeps_cumulative_percent():
    decision = _decide(active_investment(dailyRate=-4, cumulativeReturnPercent=8, daysCompleted=2))

    assert decision.outcome == PayoutOutcome.PAID
    assert decision.payout == Decimal("0.00")
    assert decision.record_updates["accruedBalance"] == Increment(Decimal("0.00"))
    assert decision.record_updates["cumulativeReturnPercent"] == 8.0
    assert decision.record_updates["currentReturnValue"] == 80.0
    assert any("negative daily rate" in warning for warning in decision.warnings)


def test_linked_profile_receives_mirrored_updates():
    decision = _decide(active_investment(userId="user-1", daysCompleted=CYCLE_LENGTH - 1))

    assert decision.profile_id == "user-1"
    assert decision.profile_updates == {
        "walletBalance": Increment(40.0),
        "roiDaysCompleted": CYCLE_LENGTH,
        "earningStatus": "completed",
    }


def test_nested_plan_updates_use_plan_paths():
    decision = _decide({
        "activePlan": {
            "amount": 500,
            "roiPercent": 2,
            "daysCompleted": CYCLE_LENGTH - 1,
            "isActive": True,
            "status": "active",
        },
    })

    assert decision.outcome == PayoutOutcome.COMPLETED
    assert decision.record_updates["activePlan.daysCompleted"] == CYCLE_LENGTH
    assert decision.record_updates["activePlan.isActive"] is False
    assert decision.record_updates["activePlan.status"] == "completed"
    assert decision.record_updates["accruedBalance"] == Increment(10.0)
    assert "daysCompleted" not in decision.record_updates


class TestTimeGate:
    """Minimum elapsed time between payouts."""

    gate = TimeGate(period=timedelta(hours=24), grace=timedelta(minutes=5))

    def test_too_soon_after_last_payout(self):
        last = (RUN_AT - timedelta(hours=1)).isoformat()
        decision = _decide(active_investment(lastPayoutDate=last), self.gate)

        assert decision.outcome == PayoutOutcome.SKIPPED_TOO_SOON
        assert not decision.has_updates

    def test_grace_buffer_allows_slightly_early_run(self):
        last = (RUN_AT - timedelta(hours=23, minutes=56)).isoformat()
        decision = _decide(active_investment(lastPayoutDate=last), self.gate)

        assert decision.outcome == PayoutOutcome.PAID

    def test_later_of_last_payout_and_cycle_start_is_used(self):
        decision = _decide(active_investment(
            lastPayoutDate=(RUN_AT - timedelta(days=3)).isoformat(),
            cycleStartDate=(RUN_AT - timedelta(hours=2)).isoformat(),
        ), self.gate)

        assert decision.outcome == PayoutOutcome.SKIPPED_TOO_SOON

    def test_missing_reference_timestamps(self):
        decision = _decide(active_investment(), self.gate)

        assert decision.outcome == PayoutOutcome.SKIPPED_TOO_SOON
        assert "no lastPayoutDate" in decision.reason

    def test_gate_disabled_pays_unconditionally(self):
        last = (RUN_AT - timedelta(minutes=1)).isoformat()
        decision = _decide(active_investment(lastPayoutDate=last))

        assert decision.outcome == PayoutOutcome.PAID
