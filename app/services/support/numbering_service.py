from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.support.sequence_models import DocumentSequence
from app.utils.sql_helpers import insert_if_absent

INVOICE_PREFIX = "INV"
PURCHASE_REQUEST_PREFIX = "PR"
PURCHASE_ORDER_PREFIX = "PO"


async def next_document_number(
    db: AsyncSession,
    prefix: str,
    on_date: date | None = None,
) -> str:
    """Return the next `{prefix}-{YYYY}-{NNNNNN}` number; caller owns the commit."""
    year = (on_date or date.today()).year

    await insert_if_absent(db, DocumentSequence, prefix=prefix, year=year, last_sequence=0)
    row = (
        await db.execute(
            select(DocumentSequence)
            .where(DocumentSequence.prefix == prefix, DocumentSequence.year == year)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
    ).scalar_one()

    row.last_sequence += 1
    await db.flush()
    return f"{prefix}-{year}-{row.last_sequence:06d}"
