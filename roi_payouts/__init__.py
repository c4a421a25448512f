"""
ROI Payouts

A daily batch job for investment plans that provides:
- Per-record eligibility and accrual decisions over a 7-day payout cycle
- Payout logs, cumulative return tracking and cycle completion/restart
- Self-healing correction of records stuck past their cycle
- Run-once (external cron) and in-process daily scheduling
"""

__version__ = "0.1.0"
__author__ = "ROI Payouts Team"
