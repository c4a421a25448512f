"""
Core payout processor components.
"""

from .types import PayoutDecision, PayoutOutcome, ProcessorStats, ProcessorStatus, TimeGate
from .decision import decide
from .processor import PayoutCycleProcessor

__all__ = [
    "PayoutDecision",
    "PayoutOutcome",
    "ProcessorStats",
    "ProcessorStatus",
    "TimeGate",
    "decide",
    "PayoutCycleProcessor",
]
