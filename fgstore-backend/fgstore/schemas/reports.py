from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from fgstore.schemas.dispatch import DispatchOut
from fgstore.schemas.inventory import ExpiryItemOut, StockMovementOut
from fgstore.schemas.requests import ApprovalHistoryOut


class DispatchReportOut(BaseModel):
    items: list[DispatchOut]
    total_quantity: int
    total_value: Decimal


class RecipientSummaryItemOut(BaseModel):
    recipient_type: str
    recipient_id: str
    recipient_name: str
    shop_name: str | None = None
    total_dispatches: int
    total_quantity: int
    total_value: Decimal
    last_dispatch_at: datetime | None = None


class RecipientSummaryStatsOut(BaseModel):
    total_recipients: int
    total_dispatches: int
    total_value: Decimal
    top_recipient: str | None = None


class RecipientSummaryOut(BaseModel):
    recipients: list[RecipientSummaryItemOut]
    stats: RecipientSummaryStatsOut


class DashboardStatsOut(BaseModel):
    total_items: int
    total_bulk_items: int
    total_packaged_items: int
    total_bulk_quantity: Decimal
    total_packaged_units: int
    expiring_items: int
    pending_dispatches: int


class DashboardOut(BaseModel):
    stats: DashboardStatsOut
    pending_dispatches: list[ApprovalHistoryOut]
    expiry_alerts: list[ExpiryItemOut]
    recent_movements: list[StockMovementOut]
