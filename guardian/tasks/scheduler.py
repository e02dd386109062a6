"""
Guardian maintenance scheduler.

Uses APScheduler to run maintenance jobs at configured intervals:
- Profile reconciliation: every PROFILE_RECONCILE_HOURS
- Regional expert awards: every REGIONAL_EXPERT_CHECK_HOURS

Usage:
    scheduler = GuardianScheduler()
    scheduler.start()   # FastAPI startup
    scheduler.stop()    # FastAPI shutdown
"""
from typing import Optional
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..core.config import settings
from .maintenance import award_regional_experts, reconcile_profiles

logger = logging.getLogger(__name__)


class GuardianScheduler:
    """Scheduler for background guardian maintenance jobs."""

    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Start the scheduler."""
        if self._running:
            logger.warning("[Scheduler] Already running")
            return

        logger.info("[Scheduler] Starting guardian maintenance scheduler...")

        self.scheduler = AsyncIOScheduler()

        # Sync jobs run in APScheduler's thread pool executor
        self.scheduler.add_job(
            reconcile_profiles,
            IntervalTrigger(hours=settings.PROFILE_RECONCILE_HOURS),
            id="reconcile_profiles",
            name="Guardian Profile Reconciliation",
            replace_existing=True,
        )

        self.scheduler.add_job(
            award_regional_experts,
            IntervalTrigger(hours=settings.REGIONAL_EXPERT_CHECK_HOURS),
            id="regional_experts",
            name="Regional Expert Awards",
            replace_existing=True,
        )

        self.scheduler.start()
        self._running = True

        logger.info("[Scheduler] Guardian maintenance scheduler started")
        logger.info(f"  Reconcile: every {settings.PROFILE_RECONCILE_HOURS} hours")
        logger.info(f"  Regional experts: every {settings.REGIONAL_EXPERT_CHECK_HOURS} hours")

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            logger.info("[Scheduler] Stopping guardian maintenance scheduler...")
            self.scheduler.shutdown(wait=True)
            self._running = False
            logger.info("[Scheduler] Scheduler stopped")


scheduler = GuardianScheduler()
