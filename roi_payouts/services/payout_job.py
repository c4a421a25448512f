"""
Run-once payout job.

Builds the record store for one run, runs the processor and disposes the
store afterwards. Used by the CLI (external cron) and by the in-process
scheduler.
"""

from datetime import datetime
from typing import Callable, Optional

import structlog

from roi_payouts.core.config import Settings, settings
from roi_payouts.core.database import Database
from .payouts.core import PayoutCycleProcessor, ProcessorStats
from .payouts.store import SqlRecordStore


logger = structlog.get_logger(__name__)


def build_record_store(config: Optional[Settings] = None) -> SqlRecordStore:
    """
    Construct an unopened SQL record store from configuration.

    Raises:
        ConfigurationError: If the store credentials are malformed
    """
    config = config or settings
    database = Database(config.resolve_database_url(), config)
    return SqlRecordStore(database)


async def run_payout_job(
    config: Optional[Settings] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> ProcessorStats:
    """Run one payout pass against the configured database."""
    config = config or settings
    store = build_record_store(config)

    async with store:
        processor = PayoutCycleProcessor(store, config, clock=clock)
        return await processor.run()
