from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fgstore.core.api_docs import error_responses
from fgstore.core.deps import get_db
from fgstore.core.errors import NotFoundError, to_http_exception
from fgstore.core.permissions import require_permission
from fgstore.core.security_current import Actor
from fgstore.core.time_utils import utcnow
from fgstore.schemas.common import CsvExportOut
from fgstore.schemas.pricing import (
    PriceChangeOut,
    PriceHistoryListOut,
    PriceHistoryOut,
    PriceHistorySummaryOut,
    PriceUpdateIn,
    PricingAnalyticsOut,
    ProductPriceListOut,
    ProductPriceOut,
)
from fgstore.services import pricing_service
from fgstore.services.pricing_service import PriceHistoryEntry

router = APIRouter(prefix="/pricing", tags=["pricing"])


def price_history_out(entry: PriceHistoryEntry) -> PriceHistoryOut:
    record = entry.record
    return PriceHistoryOut(
        id=record.id,
        product_key=record.product_key,
        product_id=record.product_id,
        product_name=entry.product_name,
        previous_price=record.previous_price,
        new_price=record.new_price,
        change_amount=entry.change_amount,
        change_percentage=round(entry.change_percentage, 2),
        change_type=entry.change_type,
        currency=record.currency,
        price_type=record.price_type,
        change_reason=record.change_reason,
        changed_by=record.changed_by,
        changed_by_name=record.changed_by_name,
        effective_date=record.effective_date,
        recorded_at=record.recorded_at,
    )


def _history_entries(
    db: Session,
    *,
    search: str | None,
    product: str | None,
    date_from: date | None,
    date_to: date | None,
    change_type: str | None,
) -> list[PriceHistoryEntry]:
    try:
        return pricing_service.list_price_history(
            db,
            search=search,
            product=product,
            date_from=date_from,
            date_to=date_to,
            change_type=change_type,
        )
    except ValueError as exc:
        raise to_http_exception(exc) from exc


@router.get(
    "",
    response_model=ProductPriceListOut,
    summary="List current product prices",
    responses=error_responses(401, 403, 500),
)
def list_product_pricing(
    price_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("pricing.view")),
):
    rows = pricing_service.list_product_pricing(db, price_type=price_type)
    return ProductPriceListOut(items=[ProductPriceOut.model_validate(row) for row in rows])


@router.get(
    "/history",
    response_model=PriceHistoryListOut,
    summary="Price change history with summary",
    responses=error_responses(400, 401, 403, 422, 500),
)
def list_price_history(
    search: str | None = Query(default=None),
    product: str | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    change_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("pricing.view")),
):
    entries = _history_entries(
        db,
        search=search,
        product=product,
        date_from=date_from,
        date_to=date_to,
        change_type=change_type,
    )
    return PriceHistoryListOut(
        items=[price_history_out(entry) for entry in entries],
        summary=PriceHistorySummaryOut(**pricing_service.price_history_summary(entries)),
    )


@router.get(
    "/history/export",
    response_model=CsvExportOut,
    summary="Export price change history as CSV",
    responses=error_responses(400, 401, 403, 422, 500),
)
def export_price_history(
    search: str | None = Query(default=None),
    product: str | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    change_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("pricing.view")),
):
    entries = _history_entries(
        db,
        search=search,
        product=product,
        date_from=date_from,
        date_to=date_to,
        change_type=change_type,
    )
    return CsvExportOut(
        filename=f"price-history-{utcnow().date().isoformat()}.csv",
        content_type="text/csv",
        row_count=len(entries),
        csv_content=pricing_service.export_price_history_csv(entries),
    )


@router.get(
    "/{product_key}",
    response_model=ProductPriceOut,
    summary="Get current price",
    responses=error_responses(401, 403, 404, 500),
)
def get_product_price(
    product_key: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("pricing.view")),
):
    try:
        record = pricing_service.get_product_price(db, product_key)
    except LookupError as exc:
        raise to_http_exception(exc) from exc
    return ProductPriceOut.model_validate(record)


@router.put(
    "/{product_key}",
    response_model=ProductPriceOut,
    summary="Set price and record the change",
    responses=error_responses(400, 401, 403, 422, 500),
)
def update_product_price(
    product_key: str,
    payload: PriceUpdateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("pricing.manage")),
):
    try:
        pricing_service.update_product_price(db, actor=actor, product_key=product_key, data=payload.model_dump())
        record = pricing_service.get_product_price(db, product_key)
    except (ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return ProductPriceOut.model_validate(record)


@router.get(
    "/{product_key}/analytics",
    response_model=PricingAnalyticsOut,
    summary="Price statistics for one product key",
    responses=error_responses(401, 403, 404, 500),
)
def get_pricing_analytics(
    product_key: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("pricing.view")),
):
    analytics = pricing_service.pricing_analytics(db, product_key)
    if analytics is None:
        raise to_http_exception(NotFoundError("No price history for product"))
    return PricingAnalyticsOut(
        **{key: value for key, value in analytics.items() if key not in ("last_change", "recent_changes")},
        last_change=PriceChangeOut.model_validate(analytics["last_change"]),
        recent_changes=[PriceChangeOut.model_validate(record) for record in analytics["recent_changes"]],
    )
