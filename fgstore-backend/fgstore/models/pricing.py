from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from fgstore.core.id_utils import generate_shortuuid
from fgstore.core.time_utils import utcnow
from fgstore.db.base import Base


class FgProductPrice(Base):
    """Current price per product key (`productId` or `productId_variantName`)."""
    __tablename__ = "fg_product_pricing"

    product_key: Mapped[str] = mapped_column(String(120), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    product_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    variant_name: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="LKR")
    price_type: Mapped[str] = mapped_column(String(20), nullable=False, default="retail")
    effective_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    change_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    updated_by_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )


class FgPriceHistory(Base):
    """Append-only price change log."""
    __tablename__ = "fg_price_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    product_key: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(String(60), nullable=False)
    product_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    previous_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    new_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    price_type: Mapped[str] = mapped_column(String(20), nullable=False)
    change_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    changed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    changed_by_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    effective_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("ix_fg_price_history_product_key_recorded_at", "product_key", "recorded_at"),
    )
