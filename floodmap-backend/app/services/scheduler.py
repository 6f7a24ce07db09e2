"""
Periodic retention sweep for automated zones
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging

from app.database import SessionLocal, settings
from app.services.rule_engine import RuleEngine

logger = logging.getLogger(__name__)

async def sweep_automated_zones(rule_engine: RuleEngine):
    """Delete automated zones older than the configured age"""
    db = SessionLocal()
    try:
        removed = await rule_engine.cleanup_old_automated_zones(
            db, max_age_ms=settings.automated_zone_max_age_seconds * 1000
        )
        logger.debug(f"Automated zone sweep removed {len(removed)} zone(s)")
    finally:
        db.close()

def start_scheduler(rule_engine: RuleEngine) -> AsyncIOScheduler:
    """Start the cleanup scheduler on the running event loop"""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        sweep_automated_zones,
        IntervalTrigger(seconds=settings.cleanup_interval_seconds),
        args=[rule_engine],
        id='automated_zone_cleanup',
        replace_existing=True
    )
    scheduler.start()
    logger.info(f"Automated zone cleanup scheduler started (interval: {settings.cleanup_interval_seconds}s)")
    return scheduler

def stop_scheduler(scheduler: AsyncIOScheduler):
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Automated zone cleanup scheduler stopped")
