from sqlalchemy import Column, Integer, String, CheckConstraint, UniqueConstraint
from app.core.db import Base


class DocumentSequence(Base):
    """Yearly counters for INV / PR / PO document numbers."""

    __tablename__ = "document_sequences"

    id = Column(Integer, primary_key=True)
    prefix = Column(String(10), nullable=False)
    year = Column(Integer, nullable=False)
    last_sequence = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("prefix", "year", name="uq_document_sequence_prefix_year"),
        CheckConstraint("last_sequence >= 0", name="ck_document_sequence_non_negative"),
    )
