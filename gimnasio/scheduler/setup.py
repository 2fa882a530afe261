"""Configuración del scheduler con APScheduler."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from gimnasio.config import get_settings

logger = logging.getLogger(__name__)

# Scheduler global
_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    """Obtiene la instancia del scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(
            timezone=get_settings().tz,
            job_defaults={
                "coalesce": True,  # Combinar ejecuciones perdidas
                "max_instances": 1,  # Un barrido a la vez
                "misfire_grace_time": 60,
            },
        )
    return _scheduler


async def setup_scheduler(start: bool = True) -> AsyncIOScheduler:
    """Configura los jobs de contratos y arranca el scheduler."""
    settings = get_settings()
    scheduler = get_scheduler()

    from gimnasio.scheduler.jobs.contract_expiry import (
        contract_expiry_job,
        expiring_contracts_report_job,
    )

    # ==================== CONTRACT EXPIRY ====================
    scheduler.add_job(
        contract_expiry_job,
        IntervalTrigger(minutes=settings.contract_expiry_interval_minutes),
        id="contract_expiry",
        name="Contract Expiry Sweep",
        replace_existing=True,
    )
    logger.info(
        f"Job configurado: Contract Expiry (cada {settings.contract_expiry_interval_minutes} min)"
    )

    # ==================== EXPIRING REPORT ====================
    # 7:00 AM todos los días
    scheduler.add_job(
        expiring_contracts_report_job,
        CronTrigger(hour=7, minute=0),
        id="expiring_contracts_report",
        name="Expiring Contracts Report",
        replace_existing=True,
    )
    logger.info("Job configurado: Expiring Contracts Report (7:00 AM)")

    if start and not scheduler.running:
        scheduler.start()
        logger.info("Scheduler iniciado")

    return scheduler


async def shutdown_scheduler() -> None:
    """Detiene el scheduler."""
    scheduler = get_scheduler()
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler detenido")
