"""
In-process daily trigger for the payout job.
"""

from .payout_scheduler import PayoutScheduler, SchedulerStats, SchedulerStatus

__all__ = ["PayoutScheduler", "SchedulerStats", "SchedulerStatus"]
