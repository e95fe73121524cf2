from sqlalchemy import Column, Integer, String, Numeric, Index, CheckConstraint, text
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, VersionMixin, SoftDeleteMixin, AuditMixin


class Product(Base, TimestampMixin, VersionMixin, SoftDeleteMixin, AuditMixin):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    sku = Column(String(50), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True, index=True)
    description = Column(String(500), nullable=True)
    unit = Column(String(20), nullable=False, default="EA")
    # Default price copied onto quotation lines that do not override it
    base_unit_price = Column(Numeric(15, 2), nullable=True)

    __table_args__ = (
        # a SKU can be reused once the previous product is deactivated
        Index(
            "uq_products_active_sku",
            "sku",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
        Index("ix_products_name_category", "name", "category"),
        CheckConstraint("base_unit_price IS NULL OR base_unit_price >= 0", name="ck_products_price_non_negative"),
    )

    def __repr__(self):
        return f"<Product id={self.id} sku={self.sku} active={not self.is_deleted}>"
