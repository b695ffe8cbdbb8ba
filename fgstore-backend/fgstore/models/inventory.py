from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, DateTime, Index, Integer, Numeric, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from fgstore.core.id_utils import generate_shortuuid
from fgstore.core.time_utils import utcnow
from fgstore.db.base import Base


class FgInventoryBatch(Base):
    """Bulk stock: a continuous quantity in a unit (L, kg)."""
    __tablename__ = "fg_inventory"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    product_id: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    batch_number: Mapped[str] = mapped_column(String(60), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, default=0)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="kg")
    quality_grade: Mapped[str] = mapped_column(String(1), nullable=False, default="A", server_default="A")
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    location: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    release_code: Mapped[str] = mapped_column(String(20), nullable=False)
    received_from: Mapped[str] = mapped_column(String(50), nullable=False, default="manual_entry")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    __table_args__ = (
        UniqueConstraint("product_id", "batch_number", name="uq_fg_inventory_product_batch"),
    )


class FgPackagedBatch(Base):
    """Packaged stock: a discrete unit count of one product variant."""
    __tablename__ = "fg_packaged_inventory"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    product_id: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    variant_name: Mapped[str] = mapped_column(String(60), nullable=False)
    variant_size: Mapped[str] = mapped_column(String(20), nullable=False)
    variant_unit: Mapped[str] = mapped_column(String(20), nullable=False)
    batch_number: Mapped[str] = mapped_column(String(60), nullable=False)
    units_in_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quality_grade: Mapped[str] = mapped_column(String(1), nullable=False, default="A", server_default="A")
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    location: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    release_code: Mapped[str] = mapped_column(String(20), nullable=False)
    received_from: Mapped[str] = mapped_column(String(50), nullable=False, default="manual_entry")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    __table_args__ = (
        UniqueConstraint(
            "product_id",
            "variant_name",
            "batch_number",
            name="uq_fg_packaged_inventory_product_variant_batch",
        ),
    )


class FgStockMovement(Base):
    """
    One row per stock movement. "in" adds stock, "out" removes it (dispatch/adjustment).
    """
    __tablename__ = "fg_stock_movements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    movement_type: Mapped[str] = mapped_column(String(3), nullable=False)  # "in", "out"
    category: Mapped[str] = mapped_column(String(10), nullable=False)  # "bulk", "units"
    inventory_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(String(60), nullable=False)
    product_name: Mapped[str] = mapped_column(String(120), nullable=False)
    variant_name: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    batch_number: Mapped[str] = mapped_column(String(60), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)  # "stock_in", "dispatch", "adjustment: ..."
    reference_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("ix_fg_stock_movements_created_at", "created_at"),
        Index("ix_fg_stock_movements_category_type_created_at", "category", "movement_type", "created_at"),
    )
