from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from fgstore.core.id_utils import generate_shortuuid
from fgstore.core.time_utils import utcnow
from fgstore.db.base import Base


class FgDispatch(Base):
    __tablename__ = "fg_dispatches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    history_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sales_approval_history.id"), nullable=False, unique=True, index=True
    )
    request_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    release_code: Mapped[str] = mapped_column(String(20), nullable=False)
    recipient_type: Mapped[str] = mapped_column(String(30), nullable=False)
    recipient_id: Mapped[str] = mapped_column(String(36), nullable=False, default="")
    recipient_name: Mapped[str] = mapped_column(String(120), nullable=False)
    shop_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    dispatched_by: Mapped[str] = mapped_column(String(36), nullable=False)
    dispatched_by_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    dispatched_by_role: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    total_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_value: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="dispatched", server_default="dispatched")
    dispatched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("ix_fg_dispatches_recipient_type_dispatched_at", "recipient_type", "dispatched_at"),
    )


class FgDispatchLine(Base):
    __tablename__ = "fg_dispatch_lines"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    dispatch_id: Mapped[str] = mapped_column(String(36), ForeignKey("fg_dispatches.id"), nullable=False, index=True)
    item_id: Mapped[str] = mapped_column(String(120), nullable=False)
    item_name: Mapped[str] = mapped_column(String(120), nullable=False)
    approved_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    dispatch_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    batch_id: Mapped[str] = mapped_column(String(36), nullable=False)
    batch_number: Mapped[str] = mapped_column(String(60), nullable=False)
    location: Mapped[str] = mapped_column(String(30), nullable=False)
    inventory_type: Mapped[str] = mapped_column(String(10), nullable=False)  # "bulk", "units"
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
