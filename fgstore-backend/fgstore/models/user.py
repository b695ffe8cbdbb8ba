from datetime import datetime
from typing import Optional
from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from fgstore.db.base import Base
from fgstore.core.id_utils import generate_shortuuid
from fgstore.core.time_utils import utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(100))
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", server_default="active")

    # Back-reference to the showroom this user manages; display only.
    showroom_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    showroom_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    showroom_code: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    __table_args__ = (
        Index("ix_users_role_status", "role", "status"),
    )
