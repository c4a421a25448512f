"""
Test investment record validation and coercion.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from roi_payouts.services.payouts.catalog import PlanCatalog
from roi_payouts.services.payouts.records import (
    InvestmentRecord,
    PayoutAction,
    RecordRejection,
    RecordState,
    validate_record,
)
from roi_payouts.services.payouts.records.coercion import (
    parse_timestamp,
    round_money,
    to_day_count,
    to_decimal,
)

from .conftest import active_investment


def test_flat_record_is_parsed():
    record = validate_record("inv-1", active_investment(
        userId="user-1",
        planName="Starter",
        cumulativeReturnPercent="8",
        lastPayoutDate="2026-10-17T02:00:00Z",
        payoutLog=[{"date": "2026-10-16"}, {"date": "2026-10-17"}],
        action="restart",
    ))

    assert isinstance(record, InvestmentRecord)
    assert record.user_id == "user-1"
    assert not record.nested
    assert record.principal == Decimal("1000")
    assert record.daily_rate == Decimal("0.04")
    assert record.daily_rate_percent == Decimal("4")
    assert record.cumulative_return_percent == Decimal("8")
    assert record.state == RecordState.ACTIVE
    assert record.action == PayoutAction.RESTART
    assert record.payout_count == 2
    assert record.last_payout_date == datetime(2026, 10, 17, 2, 0, tzinfo=timezone.utc)
    assert record.path("daysCompleted") == "daysCompleted"
    assert record.warnings == []


def test_fraction_rate_unit():
    record = validate_record("inv-1", active_investment(dailyRate=0.04), rate_unit="fraction")

    assert record.daily_rate == Decimal("0.04")


def test_nested_active_plan():
    record = validate_record("inv-1", {
        "isActive": True,
        "activePlan": {
            "planName": "Gold",
            "amount": "2500",
            "roiPercent": 3,
            "daysCompleted": 2,
            "isActive": True,
            "status": "active",
        },
    })

    assert record.nested
    assert record.account_active is True
    assert record.principal == Decimal("2500")
    assert record.days_completed == 2
    assert record.path("daysCompleted") == "activePlan.daysCompleted"
    assert record.inactive_reason is None


def test_catalog_rate_takes_precedence():
    catalog = PlanCatalog.from_documents([
        ("gold", {"dailyROI": 5, "name": "Gold"}),
        ("closed", {"dailyRate": 5, "isActive": False}),
    ])

    record = validate_record("inv-1", active_investment(planId="gold", dailyRate=1), catalog)
    assert record.daily_rate == Decimal("0.05")
    assert record.plan_active

    closed = validate_record("inv-2", active_investment(planId="closed"), catalog)
    assert not closed.plan_active
    assert closed.inactive_reason == "plan closed is inactive"


@pytest.mark.parametrize("flag", ["false", 0, "no"])
def test_non_boolean_plan_flag_makes_plan_inactive(flag):
    catalog = PlanCatalog.from_documents([("gold", {"dailyRate": 5, "isActive": flag})])

    record = validate_record("inv-1", active_investment(planId="gold"), catalog)

    assert not record.plan_active
    assert record.inactive_reason == "plan gold is inactive"


def test_unknown_plan_falls_back_to_inline_rate():
    record = validate_record("inv-1", active_investment(planId="gone", dailyRate=2), PlanCatalog())

    assert record.daily_rate == Decimal("0.02")


@pytest.mark.parametrize("document, reason", [
    (active_investment(initialAmount=None), "principal is missing"),
    (active_investment(initialAmount="lots"), "non-numeric"),
    (active_investment(initialAmount=-5), "negative"),
    (active_investment(userId=""), "userId"),
    (active_investment(userId=42), "userId"),
    ({"activePlan": "gold"}, "activePlan is not an object"),
    (active_investment(dailyRate=None), "no plan reference"),
    (active_investment(dailyRate=None, planId="gone"), "plan 'gone' not found"),
    (active_investment(action="hold"), "unknown action"),
    (active_investment(payoutLog={"date": "x"}), "payoutLog"),
    (active_investment(lastPayoutDate="yesterday"), "bad timestamp"),
    (active_investment(isActive=None, status=None), "neither isActive nor status"),
    (active_investment(isActive="yes"), "isActive must be a boolean"),
    (active_investment(isActive=True, status="completed"), "conflicting state flags"),
    (active_investment(isActive=False, status="active"), "conflicting state flags"),
])
def test_structural_rejections(document, reason):
    result = validate_record("inv-1", document)

    assert isinstance(result, RecordRejection)
    assert result.record_id == "inv-1"
    assert reason in result.reason


def test_conflicting_flags_past_cycle_are_kept_for_correction():
    record = validate_record("inv-1", active_investment(
        isActive=True, status="completed", daysCompleted=7
    ))

    assert isinstance(record, InvestmentRecord)
    assert record.state == RecordState.ACTIVE
    assert record.state_conflict


def test_unparseable_rate_defaults_to_zero_with_warning():
    record = validate_record("inv-1", active_investment(dailyRate="not-a-number"))

    assert record.daily_rate == Decimal("0")
    assert any("daily rate" in warning for warning in record.warnings)


def test_negative_rate_defaults_to_zero_with_warning():
    record = validate_record("inv-1", active_investment(dailyRate=-4))

    assert record.daily_rate == Decimal("0")
    assert any("negative daily rate" in warning for warning in record.warnings)


@pytest.mark.parametrize("raw, expected", [("3", 3), (4.0, 4), ("abc", 0), (-2, 0), (None, 0)])
def test_day_counter_coercion(raw, expected):
    record = validate_record("inv-1", active_investment(daysCompleted=raw))

    assert record.days_completed == expected
    if raw in ("abc", -2):
        assert any("daysCompleted" in warning for warning in record.warnings)


@pytest.mark.parametrize("is_active, status, state", [
    (True, None, RecordState.ACTIVE),
    (None, "active", RecordState.ACTIVE),
    (None, "completed", RecordState.COMPLETED),
    (False, "completed", RecordState.COMPLETED),
    (False, None, RecordState.INACTIVE),
    (None, "pending", RecordState.INACTIVE),
])
def test_state_derivation(is_active, status, state):
    record = validate_record("inv-1", active_investment(isActive=is_active, status=status))

    assert record.state == state


def test_coercion_helpers():
    assert to_decimal(True) is None
    assert to_decimal(" 12.5 ") == Decimal("12.5")
    assert to_decimal("nan") is None
    assert to_decimal([1]) is None
    assert to_day_count("6.9") == 6
    assert round_money(Decimal("4.99995")) == Decimal("5.00")
    assert round_money(Decimal("0.125")) == Decimal("0.13")
    assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp(datetime(2026, 1, 1)).tzinfo is not None
    with pytest.raises(ValueError):
        parse_timestamp({"seconds": 1})
