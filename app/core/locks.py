# app/core/locks.py

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import PROJECT_LOCK_TIMEOUT_SECONDS
from app.core.exceptions import LockAcquisitionException
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Postgres SQLSTATE for lock_not_available
LOCK_NOT_AVAILABLE = "55P03"

_local_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def project_lock_key(project_id: int) -> str:
    return f"project:{project_id}"


def _local_lock(key: str) -> asyncio.Lock:
    # asyncio.Lock binds to the loop it first waits on
    loop = asyncio.get_running_loop()
    return _local_locks.setdefault(loop, {}).setdefault(key, asyncio.Lock())


async def _acquire_advisory_lock(db: AsyncSession, key: str, timeout: float) -> None:
    timeout_ms = max(int(timeout * 1000), 1)
    await db.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))

    try:
        await db.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
            {"key": key},
        )
    except DBAPIError as exc:
        sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
        if sqlstate == LOCK_NOT_AVAILABLE or "lock timeout" in str(exc.orig).lower():
            await db.rollback()
            logger.warning("Advisory lock timeout", extra={"lock_key": key})
            raise LockAcquisitionException(key, timeout) from exc
        raise

    await db.execute(text("SET LOCAL lock_timeout = DEFAULT"))


@asynccontextmanager
async def project_lock(
    db: AsyncSession,
    project_id: int,
    timeout: float | None = None,
) -> AsyncIterator[str]:
    """
    Serialize work on one project.

    On PostgreSQL this takes a transaction-scoped advisory lock, released by
    the commit or rollback that ends the caller's transaction. Other dialects
    fall back to an in-process keyed lock held until the block exits, so the
    caller must commit inside the block.
    """
    key = project_lock_key(project_id)
    timeout = PROJECT_LOCK_TIMEOUT_SECONDS if timeout is None else timeout

    if db.get_bind().dialect.name == "postgresql":
        await _acquire_advisory_lock(db, key, timeout)
        yield key
        return

    lock = _local_lock(key)
    try:
        await asyncio.wait_for(lock.acquire(), timeout)
    except asyncio.TimeoutError:
        logger.warning("Project lock timeout", extra={"lock_key": key})
        raise LockAcquisitionException(key, timeout)

    try:
        yield key
    except BaseException:
        await db.rollback()
        raise
    finally:
        lock.release()
