"""
Investment record schema and validation.
"""

from .schema import (
    CYCLE_LENGTH,
    InvestmentRecord,
    PayoutAction,
    PayoutLogEntry,
    Plan,
    RecordRejection,
    RecordState,
)
from .validation import validate_record

__all__ = [
    "CYCLE_LENGTH",
    "InvestmentRecord",
    "PayoutAction",
    "PayoutLogEntry",
    "Plan",
    "RecordRejection",
    "RecordState",
    "validate_record",
]
