"""
Typed investment record schema.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


CYCLE_LENGTH = 7
NESTED_PLAN_KEY = "activePlan"
RATE_KEYS = ("dailyRate", "dailyROI", "roiPercent")


class RecordState(str, Enum):
    """Single lifecycle state derived from the stored isActive/status flags."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"


class PayoutAction(str, Enum):
    """Operator instruction governing what happens at the cycle boundary."""
    ACTIVE = "active"
    RESTART = "restart"
    PAUSED = "paused"
    STOPPED = "stopped"


class Plan(BaseModel):
    """Plan catalog entry."""
    model_config = ConfigDict(frozen=True)

    plan_id: str
    name: Optional[str] = None
    daily_rate: Any = None  # as stored; coerced per record
    is_active: bool = True


class PayoutLogEntry(BaseModel):
    """One appended payout log element."""
    model_config = ConfigDict(frozen=True)

    paid_on: date
    amount: Decimal
    status: str = "paid"

    def to_document(self) -> Dict[str, Any]:
        return {
            "date": self.paid_on.isoformat(),
            "amount": float(self.amount),
            "status": self.status,
        }


class InvestmentRecord(BaseModel):
    """
    A validated investment record.

    Plan-scoped fields live under ``activePlan`` for nested documents and
    at the top level otherwise; ``path()`` maps a field name to where it is
    stored.
    """
    model_config = ConfigDict(frozen=True)

    record_id: str
    user_id: Optional[str] = None
    nested: bool = False

    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    plan_active: bool = True

    principal: Decimal = Field(ge=0)
    daily_rate: Decimal = Decimal("0")  # fraction per day, 0.04 == 4%
    cumulative_return_percent: Decimal = Decimal("0")
    days_completed: int = Field(default=0, ge=0)

    state: RecordState
    state_conflict: bool = False
    account_active: Optional[bool] = None  # top-level flag of nested documents
    action: Optional[PayoutAction] = None

    last_payout_date: Optional[datetime] = None
    cycle_start_date: Optional[datetime] = None
    payout_count: int = 0

    warnings: List[str] = Field(default_factory=list)

    @property
    def daily_rate_percent(self) -> Decimal:
        return self.daily_rate * 100

    @property
    def cycle_finished(self) -> bool:
        return self.days_completed >= CYCLE_LENGTH

    @property
    def flagged_active(self) -> bool:
        return self.state == RecordState.ACTIVE

    @property
    def inactive_reason(self) -> Optional[str]:
        """Why the activity gate rejects this record, or None when every signal says active."""
        if self.state != RecordState.ACTIVE:
            return f"state is {self.state.value}"
        if self.account_active is False:
            return "account flag is inactive"
        if not self.plan_active:
            return f"plan {self.plan_id} is inactive"
        if self.action in (PayoutAction.PAUSED, PayoutAction.STOPPED):
            return f"action is {self.action.value}"
        return None

    def path(self, field: str) -> str:
        return f"{NESTED_PLAN_KEY}.{field}" if self.nested else field


class RecordRejection(BaseModel):
    """Structural validation failure for one record."""
    model_config = ConfigDict(frozen=True)

    record_id: str
    reason: str
