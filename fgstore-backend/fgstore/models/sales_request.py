from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from fgstore.core.id_utils import generate_shortuuid
from fgstore.core.time_utils import utcnow
from fgstore.db.base import Base


class SalesRequest(Base):
    """
    A request for goods raised by a direct representative, direct shop or distributor.
    `items` is stored as received: absent, a JSON-encoded string, or an object.
    Legacy rows carry a flat `product` + `quantity` pair or a `products` field instead.
    """
    __tablename__ = "sales_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    request_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default="direct_representative", server_default="direct_representative"
    )
    requested_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    requested_by_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    requester_role: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    items: Mapped[Any] = mapped_column(JSON, nullable=True)
    product: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    quantity: Mapped[Any] = mapped_column(JSON, nullable=True)
    products: Mapped[Any] = mapped_column(JSON, nullable=True)

    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="normal", server_default="normal")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    shop_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Pending", server_default="Pending")

    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    approver_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    approver_role: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    __table_args__ = (
        Index("ix_sales_requests_status_created_at", "status", "created_at"),
        Index("ix_sales_requests_type_status", "request_type", "status"),
    )


class SalesApprovalHistory(Base):
    """Snapshot written once per approval; only dispatch touches it afterwards."""
    __tablename__ = "sales_approval_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    request_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    request_type: Mapped[str] = mapped_column(String(30), nullable=False)
    type: Mapped[str] = mapped_column(String(40), nullable=False)

    items: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    total_quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    requester_id: Mapped[str] = mapped_column(String(36), nullable=False, default="")
    requester_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    requester_role: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    approved_by: Mapped[str] = mapped_column(String(36), nullable=False, default="")
    approver_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    approver_role: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Approved")
    shop_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")

    is_dispatched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")
    is_completed_by_fg: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")

    approved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    dispatched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_sales_approval_history_dispatched_approved_at", "is_dispatched", "approved_at"),
    )
