from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fgstore.core.api_docs import error_responses
from fgstore.core.deps import get_db
from fgstore.core.errors import to_http_exception
from fgstore.core.permissions import require_permission
from fgstore.core.security_current import Actor
from fgstore.schemas.location import (
    ActiveLocationCodesOut,
    LocationOverviewOut,
    LocationOverviewStatsOut,
    LocationUtilizationOut,
    StorageLocationCreateIn,
    StorageLocationListOut,
    StorageLocationOut,
    StorageLocationUpdateIn,
)
from fgstore.services import location_service

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get(
    "",
    response_model=StorageLocationListOut,
    summary="List storage locations",
    responses=error_responses(401, 403, 422, 500),
)
def list_locations(
    status: str | None = Query(default=None, pattern="^(active|inactive)$"),
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("inventory.view")),
):
    rows = location_service.list_locations(db, status=status, search=search)
    return StorageLocationListOut(items=[StorageLocationOut.model_validate(row) for row in rows])


@router.post(
    "",
    response_model=StorageLocationOut,
    status_code=201,
    summary="Create storage location",
    responses=error_responses(400, 401, 403, 409, 422, 500),
)
def create_location(
    payload: StorageLocationCreateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("locations.manage")),
):
    try:
        location = location_service.create_location(db, actor=actor, data=payload.model_dump())
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return StorageLocationOut.model_validate(location)


@router.get(
    "/active-codes",
    response_model=ActiveLocationCodesOut,
    summary="Codes of active storage locations",
    responses=error_responses(401, 403, 500),
)
def get_active_location_codes(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("inventory.view")),
):
    return ActiveLocationCodesOut(codes=location_service.active_location_codes(db))


@router.get(
    "/overview",
    response_model=LocationOverviewOut,
    summary="Utilization per storage location",
    responses=error_responses(401, 403, 422, 500),
)
def get_location_overview(
    status: str | None = Query(default=None, pattern="^(active|inactive)$"),
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("inventory.view")),
):
    overview = location_service.location_overview(db, status=status, search=search)
    return LocationOverviewOut(
        locations=[
            LocationUtilizationOut(
                location=StorageLocationOut.model_validate(entry["location"]),
                item_count=entry["item_count"],
                utilization=entry["utilization"],
            )
            for entry in overview["locations"]
        ],
        stats=LocationOverviewStatsOut(**overview["stats"]),
    )


@router.patch(
    "/{location_id}",
    response_model=StorageLocationOut,
    summary="Update storage location",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def update_location(
    location_id: str,
    payload: StorageLocationUpdateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("locations.manage")),
):
    try:
        location = location_service.update_location(
            db,
            actor=actor,
            location_id=location_id,
            changes=payload.model_dump(exclude_unset=True),
        )
    except (ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return StorageLocationOut.model_validate(location)
