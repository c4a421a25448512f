"""
Long-running entry point: in-process daily payout trigger.
"""

import asyncio
import signal
from typing import Optional

import structlog

from roi_payouts.core.config import Settings, settings
from .payout_scheduler import PayoutScheduler

logger = structlog.get_logger(__name__)


async def main(config: Optional[Settings] = None, run_now: bool = False):
    """Run the scheduler until SIGINT/SIGTERM."""
    config = config or settings
    scheduler = PayoutScheduler(config=config)
    stop_event = asyncio.Event()

    def signal_handler(signum):
        logger.info("Received shutdown signal", signal=signal.Signals(signum).name)
        stop_event.set()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, signal_handler, signum)

    try:
        if run_now:
            await scheduler.run_scheduled()
        await scheduler.start()
        await stop_event.wait()
    finally:
        await scheduler.stop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)
