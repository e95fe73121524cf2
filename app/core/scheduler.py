from apscheduler.schedulers.asyncio import AsyncIOScheduler
from app.core.db import AsyncSessionLocal

from app.services.auth.auth_service import purge_stale_refresh_tokens
from app.services.billing.invoice_service import mark_overdue_invoices
from app.services.mail.mail_oauth_service import purge_expired_states
from app.utils.logger import get_logger

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler(job_defaults={"coalesce": True, "max_instances": 1})


@scheduler.scheduled_job("cron", hour=0, minute=5, id="overdue_invoices")
async def mark_overdue_invoices_job():
    async with AsyncSessionLocal() as db:
        count = await mark_overdue_invoices(db)
        logger.info("Overdue invoice sweep finished", extra={"count": count})


@scheduler.scheduled_job("interval", minutes=30, id="mail_oauth_states")
async def purge_oauth_states_job():
    async with AsyncSessionLocal() as db:
        purged = await purge_expired_states(db)
        await db.commit()
        if purged:
            logger.info("Expired mail OAuth states purged", extra={"count": purged})


@scheduler.scheduled_job("cron", hour=3, minute=0, id="refresh_tokens")
async def purge_refresh_tokens_job():
    async with AsyncSessionLocal() as db:
        purged = await purge_stale_refresh_tokens(db)
        await db.commit()
        logger.info("Stale refresh tokens purged", extra={"count": purged})
