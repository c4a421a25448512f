"""
ROI payout cycle processing.

Components:
- payouts.store - Record store contract and implementations
- payouts.records - Typed investment record schema and validation
- payouts.catalog - Plan catalog (plan id -> daily rate)
- payouts.core - Decision state machine and the cycle processor
"""
