import re
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.projects.project_models import JobCodeSequence
from app.utils.sql_helpers import insert_if_absent
from app.utils.logger import get_logger

logger = get_logger(__name__)

JOB_CODE_PREFIX = "WK2K"
JOB_CODE_PATTERN = re.compile(r"^WK2K(\d{2})-(\d{4,})-(\d{4})$")


def format_job_code(on_date: date, sequence: int) -> str:
    return f"{JOB_CODE_PREFIX}{on_date:%y}-{sequence:04d}-{on_date:%m%d}"


def parse_job_code(job_code: str) -> tuple[str, int, str]:
    """Split a job code into (yy, sequence, MMdd)."""
    match = JOB_CODE_PATTERN.match(job_code)
    if not match:
        raise ValueError(f"Not a job code: {job_code}")
    return match.group(1), int(match.group(2)), match.group(3)


async def _get_sequence_for_update(db: AsyncSession, year: str) -> JobCodeSequence:
    await insert_if_absent(db, JobCodeSequence, year=year, last_sequence=0)

    result = await db.execute(
        select(JobCodeSequence)
        .where(JobCodeSequence.year == year)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def generate_job_code(db: AsyncSession, on_date: date | None = None) -> str:
    """
    Reserve the next job code for the given date.

    The year's counter row stays locked until the caller commits, so codes
    issued within one year are strictly increasing.
    """
    on_date = on_date or date.today()
    row = await _get_sequence_for_update(db, f"{on_date:%y}")

    row.last_sequence += 1
    await db.flush()

    job_code = format_job_code(on_date, row.last_sequence)
    logger.info("Job code generated", extra={"job_code": job_code})
    return job_code
