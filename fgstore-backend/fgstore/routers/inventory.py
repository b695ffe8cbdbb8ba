from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fgstore.core.api_docs import error_responses
from fgstore.core.deps import get_db
from fgstore.core.errors import to_http_exception
from fgstore.core.permissions import require_permission
from fgstore.core.security_current import Actor
from fgstore.schemas.inventory import (
    BulkBatchListOut,
    BulkBatchOut,
    BulkStockIn,
    ExpiryItemOut,
    ExpiryReportOut,
    ExpirySummaryOut,
    PackagedBatchListOut,
    PackagedBatchOut,
    PackagedStockIn,
    StockAdjustIn,
    StockMovementListOut,
    StockMovementOut,
)
from fgstore.services import expiry_service, inventory_service
from fgstore.services.expiry_service import ExpiryEntry

router = APIRouter(prefix="/inventory", tags=["inventory"])


def expiry_item_out(entry: ExpiryEntry) -> ExpiryItemOut:
    batch = entry.batch
    return ExpiryItemOut(
        batch_id=batch.id,
        inventory_type=entry.inventory_type,
        product_id=batch.product_id,
        product_name=batch.product_name,
        variant_name=getattr(batch, "variant_name", None),
        batch_number=batch.batch_number,
        location=batch.location,
        quantity=batch.quantity if entry.inventory_type == "bulk" else batch.units_in_stock,
        expiry_date=batch.expiry_date,
        days_to_expiry=entry.days_to_expiry,
        status=entry.status,
    )


@router.get(
    "/bulk",
    response_model=BulkBatchListOut,
    summary="List bulk inventory batches",
    responses=error_responses(401, 403, 500),
)
def list_bulk_inventory(
    product_name: str | None = Query(default=None),
    location: str | None = Query(default=None),
    in_stock_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("inventory.view")),
):
    rows = inventory_service.list_bulk_inventory(
        db,
        product_name=product_name,
        location=location,
        in_stock_only=in_stock_only,
    )
    return BulkBatchListOut(items=[BulkBatchOut.model_validate(row) for row in rows])


@router.post(
    "/bulk",
    response_model=BulkBatchOut,
    status_code=201,
    summary="Receive bulk stock",
    responses=error_responses(400, 401, 403, 422, 500),
)
def add_bulk_stock(
    payload: BulkStockIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("inventory.manage")),
):
    try:
        batch = inventory_service.add_bulk_stock(db, actor=actor, data=payload.model_dump())
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return BulkBatchOut.model_validate(batch)


@router.get(
    "/packaged",
    response_model=PackagedBatchListOut,
    summary="List packaged inventory batches",
    responses=error_responses(401, 403, 500),
)
def list_packaged_inventory(
    product_name: str | None = Query(default=None),
    location: str | None = Query(default=None),
    in_stock_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("inventory.view")),
):
    rows = inventory_service.list_packaged_inventory(
        db,
        product_name=product_name,
        location=location,
        in_stock_only=in_stock_only,
    )
    return PackagedBatchListOut(items=[PackagedBatchOut.model_validate(row) for row in rows])


@router.post(
    "/packaged",
    response_model=PackagedBatchOut,
    status_code=201,
    summary="Receive packaged stock",
    responses=error_responses(400, 401, 403, 422, 500),
)
def add_packaged_stock(
    payload: PackagedStockIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("inventory.manage")),
):
    try:
        batch = inventory_service.add_packaged_stock(db, actor=actor, data=payload.model_dump())
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return PackagedBatchOut.model_validate(batch)


@router.get(
    "/movements",
    response_model=StockMovementListOut,
    summary="List stock movements",
    responses=error_responses(400, 401, 403, 422, 500),
)
def list_stock_movements(
    search: str | None = Query(default=None),
    movement_type: str | None = Query(default=None),
    category: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("inventory.view")),
):
    try:
        rows = inventory_service.list_stock_movements(
            db,
            search=search,
            movement_type=movement_type,
            category=category,
            limit=limit,
        )
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return StockMovementListOut(items=[StockMovementOut.model_validate(row) for row in rows])


@router.get(
    "/expiry",
    response_model=ExpiryReportOut,
    summary="Expiry report across bulk and packaged stock",
    responses=error_responses(400, 401, 403, 500),
)
def get_expiry_report(
    status: str | None = Query(default=None),
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("inventory.view")),
):
    try:
        report = expiry_service.expiry_report(db, status=status, search=search)
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return ExpiryReportOut(
        items=[expiry_item_out(entry) for entry in report["items"]],
        summary=ExpirySummaryOut(**report["summary"]),
    )


@router.post(
    "/{batch_id}/adjust",
    response_model=BulkBatchOut | PackagedBatchOut,
    summary="Adjust stock on a batch",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def adjust_stock(
    batch_id: str,
    payload: StockAdjustIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("inventory.manage")),
):
    try:
        batch = inventory_service.adjust_stock(
            db,
            actor=actor,
            inventory_type=payload.inventory_type,
            batch_id=batch_id,
            delta=payload.delta,
            reason=payload.reason,
        )
    except (ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    if payload.inventory_type == "bulk":
        return BulkBatchOut.model_validate(batch)
    return PackagedBatchOut.model_validate(batch)
