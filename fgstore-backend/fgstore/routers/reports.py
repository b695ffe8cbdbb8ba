from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fgstore.core.api_docs import error_responses
from fgstore.core.deps import get_db
from fgstore.core.errors import to_http_exception
from fgstore.core.money import ZERO_MONEY, to_money
from fgstore.core.permissions import require_permission
from fgstore.core.security_current import Actor
from fgstore.core.time_utils import utcnow
from fgstore.routers.inventory import expiry_item_out
from fgstore.schemas.common import CsvExportOut
from fgstore.schemas.dispatch import DispatchOut
from fgstore.schemas.inventory import StockMovementOut
from fgstore.schemas.reports import (
    DashboardOut,
    DashboardStatsOut,
    DispatchReportOut,
    RecipientSummaryItemOut,
    RecipientSummaryOut,
    RecipientSummaryStatsOut,
)
from fgstore.schemas.requests import ApprovalHistoryOut
from fgstore.services import report_service

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get(
    "/dispatches",
    response_model=DispatchReportOut,
    summary="Dispatch records within a date range",
    responses=error_responses(401, 403, 422, 500),
)
def get_dispatch_report(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    recipient_type: str | None = Query(default=None),
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("reports.view")),
):
    rows = report_service.dispatch_report(
        db,
        date_from=date_from,
        date_to=date_to,
        recipient_type=recipient_type,
        status=status,
    )
    return DispatchReportOut(
        items=[DispatchOut.model_validate(row) for row in rows],
        total_quantity=sum(int(row.total_quantity or 0) for row in rows),
        total_value=to_money(sum((to_money(row.total_value or 0) for row in rows), ZERO_MONEY)),
    )


@router.get(
    "/dispatches/export",
    response_model=CsvExportOut,
    summary="Export dispatch records as CSV",
    responses=error_responses(401, 403, 422, 500),
)
def export_dispatch_report(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    recipient_type: str | None = Query(default=None),
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("reports.view")),
):
    rows = report_service.dispatch_report(
        db,
        date_from=date_from,
        date_to=date_to,
        recipient_type=recipient_type,
        status=status,
    )
    return CsvExportOut(
        filename=f"dispatch-report-{utcnow().date().isoformat()}.csv",
        content_type="text/csv",
        row_count=len(rows),
        csv_content=report_service.export_dispatch_report_csv(rows),
    )


@router.get(
    "/recipients",
    response_model=RecipientSummaryOut,
    summary="Dispatch totals per recipient",
    responses=error_responses(400, 401, 403, 500),
)
def get_recipient_summary(
    recipient_type: str | None = Query(default=None),
    search: str | None = Query(default=None),
    sort_by: str = Query(default="value"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("reports.view")),
):
    try:
        summary = report_service.recipient_summary(
            db,
            recipient_type=recipient_type,
            search=search,
            sort_by=sort_by,
        )
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return RecipientSummaryOut(
        recipients=[RecipientSummaryItemOut(**entry) for entry in summary["recipients"]],
        stats=RecipientSummaryStatsOut(**summary["stats"]),
    )


@router.get(
    "/dashboard",
    response_model=DashboardOut,
    summary="FG store dashboard",
    responses=error_responses(401, 403, 500),
)
def get_dashboard(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("reports.view")),
):
    data = report_service.dashboard(db)
    return DashboardOut(
        stats=DashboardStatsOut(**data["stats"]),
        pending_dispatches=[ApprovalHistoryOut.model_validate(row) for row in data["pending_dispatches"]],
        expiry_alerts=[expiry_item_out(entry) for entry in data["expiry_alerts"]],
        recent_movements=[StockMovementOut.model_validate(row) for row in data["recent_movements"]],
    )
