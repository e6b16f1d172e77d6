# ================================================================
# services/scheduler.py: Periodic background sweeps
# ================================================================
from typing import Callable, List
import asyncio
import logging

from sqlmodel import Session

from core.config import settings
from core.database import engine
from services.sweeps import SweepReport, run_contact_retention_sweep, run_subscription_expiry_sweep

logger = logging.getLogger(__name__)


def _run_with_session(sweep: Callable[[Session], SweepReport]) -> SweepReport:
    with Session(engine) as session:
        return sweep(session)


async def run_periodically(name: str, sweep: Callable[[Session], SweepReport], interval_seconds: float) -> None:
    """Run ``sweep`` forever; a failing run is logged and retried on the next tick."""
    while True:
        try:
            await asyncio.to_thread(_run_with_session, sweep)
        except Exception as e:
            logger.error("❌ Background sweep %s failed: %s", name, e)
        await asyncio.sleep(interval_seconds)


def start_background_sweeps() -> List[asyncio.Task]:
    tasks = [
        asyncio.create_task(
            run_periodically("contact_retention", run_contact_retention_sweep, settings.PHASE_SWEEP_INTERVAL_SECONDS)
        ),
        asyncio.create_task(
            run_periodically("subscription_expiry", run_subscription_expiry_sweep, settings.SUBSCRIPTION_SWEEP_INTERVAL_SECONDS)
        ),
    ]
    logger.info(
        "⏰ Sweeps scheduled (retention every %ss, expiry every %ss)",
        settings.PHASE_SWEEP_INTERVAL_SECONDS,
        settings.SUBSCRIPTION_SWEEP_INTERVAL_SECONDS,
    )
    return tasks


async def stop_background_sweeps(tasks: List[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
