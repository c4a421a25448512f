"""
Structural validation of raw investment documents.

``validate_record`` turns a stored document into either an
``InvestmentRecord`` or a ``RecordRejection`` before any payout logic
runs. Numeric fields that merely fail to parse (rate, day counter) are
defaulted to 0 and reported through ``InvestmentRecord.warnings``.
"""

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

from .coercion import parse_timestamp, to_day_count, to_decimal
from .schema import (
    CYCLE_LENGTH,
    NESTED_PLAN_KEY,
    RATE_KEYS,
    InvestmentRecord,
    PayoutAction,
    RecordRejection,
    RecordState,
)

if TYPE_CHECKING:
    from ..catalog import PlanCatalog


PRINCIPAL_KEYS = ("initialAmount", "amount", "initialInvestmentAmount")

ValidationResult = Union[InvestmentRecord, RecordRejection]


class _Reject(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def _first(data: Dict[str, Any], keys) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _derive_state(is_active: Any, status: Any) -> Tuple[RecordState, Optional[str]]:
    """
    Collapse the isActive/status pair into one state.

    Returns the state and, when the two flags disagree, a description of
    the conflict. A conflicting record reports ACTIVE so the caller can
    decide between rejecting it and auto-correcting it.
    """
    if is_active is not None and not isinstance(is_active, bool):
        raise _Reject(f"isActive must be a boolean, got {is_active!r}")
    if status is not None and not isinstance(status, str):
        raise _Reject(f"status must be a string, got {status!r}")
    if is_active is None and status is None:
        raise _Reject("record has neither isActive nor status")

    normalized = status.strip().lower() if status is not None else None

    if is_active is None:
        if normalized == "active":
            return RecordState.ACTIVE, None
        if normalized == "completed":
            return RecordState.COMPLETED, None
        return RecordState.INACTIVE, None

    if is_active:
        if normalized in (None, "active"):
            return RecordState.ACTIVE, None
        return RecordState.ACTIVE, f"isActive is true but status is {status!r}"

    if normalized == "active":
        return RecordState.ACTIVE, "isActive is false but status is 'active'"
    if normalized == "completed":
        return RecordState.COMPLETED, None
    return RecordState.INACTIVE, None


def _resolve_rate(
    plan_fields: Dict[str, Any],
    catalog: Optional["PlanCatalog"],
    rate_unit: str,
    warnings: List[str],
) -> Tuple[Decimal, bool]:
    plan_id = plan_fields.get("planId")
    inline_rate = _first(plan_fields, RATE_KEYS)

    if plan_id is not None and not isinstance(plan_id, str):
        raise _Reject(f"planId must be a string, got {plan_id!r}")

    plan = catalog.get(plan_id) if catalog is not None else None
    if plan is not None:
        raw_rate, plan_active = plan.daily_rate, plan.is_active
    elif inline_rate is not None:
        raw_rate, plan_active = inline_rate, True
    elif plan_id is not None:
        raise _Reject(f"plan {plan_id!r} not found and no inline rate")
    else:
        raise _Reject("no plan reference or inline rate")

    rate = to_decimal(raw_rate)
    if rate is None:
        warnings.append(f"unparseable daily rate {raw_rate!r}, using 0")
        rate = Decimal("0")
    elif rate < 0:
        warnings.append(f"negative daily rate {raw_rate!r}, using 0")
        rate = Decimal("0")

    if rate_unit == "percent":
        rate = rate / 100
    return rate, plan_active


def _parse(
    record_id: str,
    data: Dict[str, Any],
    catalog: Optional["PlanCatalog"],
    rate_unit: str,
) -> InvestmentRecord:
    if not isinstance(data, dict):
        raise _Reject("document is not an object")

    user_id = data.get("userId")
    if user_id is not None and (not isinstance(user_id, str) or not user_id.strip()):
        raise _Reject(f"userId must be a non-empty string, got {user_id!r}")

    nested = NESTED_PLAN_KEY in data
    if nested:
        plan_fields = data[NESTED_PLAN_KEY]
        if not isinstance(plan_fields, dict):
            raise _Reject(f"{NESTED_PLAN_KEY} is not an object")
        account_active = data.get("isActive")
        if account_active is not None and not isinstance(account_active, bool):
            raise _Reject(f"isActive must be a boolean, got {account_active!r}")
    else:
        plan_fields = data
        account_active = None

    raw_principal = _first(plan_fields, PRINCIPAL_KEYS)
    principal = to_decimal(raw_principal)
    if principal is None:
        raise _Reject(f"principal is missing or non-numeric ({raw_principal!r})")
    if principal < 0:
        raise _Reject(f"principal is negative ({principal})")

    warnings: List[str] = []
    daily_rate, plan_active = _resolve_rate(plan_fields, catalog, rate_unit, warnings)

    raw_days = plan_fields.get("daysCompleted")
    days_completed = to_day_count(raw_days if raw_days is not None else 0)
    if days_completed is None:
        warnings.append(f"unparseable daysCompleted {raw_days!r}, using 0")
        days_completed = 0

    state, conflict = _derive_state(plan_fields.get("isActive"), plan_fields.get("status"))
    if conflict and days_completed < CYCLE_LENGTH:
        raise _Reject(f"conflicting state flags: {conflict}")

    raw_action = plan_fields.get("action")
    action = None
    if raw_action is not None:
        try:
            action = PayoutAction(str(raw_action).strip().lower())
        except ValueError:
            raise _Reject(f"unknown action {raw_action!r}") from None

    cumulative = to_decimal(data.get("cumulativeReturnPercent", 0))
    if cumulative is None:
        warnings.append(
            f"unparseable cumulativeReturnPercent {data.get('cumulativeReturnPercent')!r}, using 0"
        )
        cumulative = Decimal("0")

    payout_log = data.get("payoutLog", [])
    if payout_log is None:
        payout_log = []
    if not isinstance(payout_log, list):
        raise _Reject("payoutLog is not a list")

    try:
        last_payout_date = parse_timestamp(data.get("lastPayoutDate"))
        cycle_start_date = parse_timestamp(data.get("cycleStartDate"))
    except ValueError as e:
        raise _Reject(f"bad timestamp: {e}") from None

    return InvestmentRecord(
        record_id=record_id,
        user_id=user_id.strip() if user_id else None,
        nested=nested,
        plan_id=plan_fields.get("planId"),
        plan_name=plan_fields.get("planName"),
        plan_active=plan_active,
        principal=principal,
        daily_rate=daily_rate,
        cumulative_return_percent=cumulative,
        days_completed=days_completed,
        state=state,
        state_conflict=conflict is not None,
        account_active=account_active,
        action=action,
        last_payout_date=last_payout_date,
        cycle_start_date=cycle_start_date,
        payout_count=len(payout_log),
        warnings=warnings,
    )


def validate_record(
    record_id: str,
    data: Dict[str, Any],
    catalog: Optional["PlanCatalog"] = None,
    rate_unit: str = "percent",
) -> ValidationResult:
    """
    Validate one stored investment document.

    Args:
        record_id: Document id
        data: Raw document body
        catalog: Plan catalog used to resolve ``planId`` (empty if omitted)
        rate_unit: ``percent`` when stored rates are percentage points,
            ``fraction`` when they are already fractions

    Returns:
        InvestmentRecord on success, RecordRejection otherwise
    """
    try:
        return _parse(record_id, data, catalog, rate_unit)
    except _Reject as rejection:
        return RecordRejection(record_id=record_id, reason=rejection.reason)
