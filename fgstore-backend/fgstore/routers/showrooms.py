from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fgstore.core.api_docs import error_responses
from fgstore.core.deps import get_db
from fgstore.core.errors import NotFoundError, to_http_exception
from fgstore.core.permissions import require_permission
from fgstore.core.security_current import Actor
from fgstore.schemas.showroom import (
    AssignManagerIn,
    ShowroomCreateIn,
    ShowroomListOut,
    ShowroomOut,
    ShowroomStaffOut,
    ShowroomStatsOut,
    ShowroomUpdateIn,
    StaffMemberOut,
)
from fgstore.services import showroom_service

router = APIRouter(prefix="/showrooms", tags=["showrooms"])


@router.get(
    "",
    response_model=ShowroomListOut,
    summary="List showrooms",
    responses=error_responses(401, 403, 500),
)
def list_showrooms(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("showrooms.view")),
):
    rows = showroom_service.list_showrooms(db)
    return ShowroomListOut(items=[ShowroomOut.model_validate(row) for row in rows])


@router.get(
    "/active",
    response_model=ShowroomListOut,
    summary="List active showrooms",
    responses=error_responses(401, 403, 500),
)
def list_active_showrooms(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("showrooms.view")),
):
    rows = showroom_service.list_active_showrooms(db)
    return ShowroomListOut(items=[ShowroomOut.model_validate(row) for row in rows])


@router.get(
    "/by-code/{code}",
    response_model=ShowroomOut,
    summary="Find showroom by code",
    responses=error_responses(401, 403, 404, 500),
)
def get_showroom_by_code(
    code: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("showrooms.view")),
):
    showroom = showroom_service.get_showroom_by_code(db, code)
    if not showroom:
        raise to_http_exception(NotFoundError("Showroom not found"))
    return ShowroomOut.model_validate(showroom)


@router.post(
    "",
    response_model=ShowroomOut,
    status_code=201,
    summary="Create showroom",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def create_showroom(
    payload: ShowroomCreateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("showrooms.manage")),
):
    try:
        showroom = showroom_service.create_showroom(db, actor=actor, payload=payload.model_dump())
    except (ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return ShowroomOut.model_validate(showroom)


@router.get(
    "/{showroom_id}",
    response_model=ShowroomOut,
    summary="Get showroom",
    responses=error_responses(401, 403, 404, 500),
)
def get_showroom(
    showroom_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("showrooms.view")),
):
    try:
        showroom = showroom_service.get_showroom(db, showroom_id)
    except LookupError as exc:
        raise to_http_exception(exc) from exc
    return ShowroomOut.model_validate(showroom)


@router.patch(
    "/{showroom_id}",
    response_model=ShowroomOut,
    summary="Update showroom",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def update_showroom(
    showroom_id: str,
    payload: ShowroomUpdateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("showrooms.manage")),
):
    try:
        showroom = showroom_service.update_showroom(
            db,
            actor=actor,
            showroom_id=showroom_id,
            changes=payload.model_dump(exclude_unset=True),
        )
    except (ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return ShowroomOut.model_validate(showroom)


@router.delete(
    "/{showroom_id}",
    response_model=ShowroomOut,
    summary="Deactivate showroom",
    responses=error_responses(401, 403, 404, 500),
)
def delete_showroom(
    showroom_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("showrooms.manage")),
):
    try:
        showroom = showroom_service.delete_showroom(db, actor=actor, showroom_id=showroom_id)
    except LookupError as exc:
        raise to_http_exception(exc) from exc
    return ShowroomOut.model_validate(showroom)


@router.put(
    "/{showroom_id}/manager",
    response_model=ShowroomOut,
    summary="Assign or clear showroom manager",
    responses=error_responses(401, 403, 404, 409, 422, 500),
)
def assign_manager(
    showroom_id: str,
    payload: AssignManagerIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("showrooms.manage")),
):
    try:
        showroom = showroom_service.assign_manager(
            db,
            actor=actor,
            showroom_id=showroom_id,
            manager_id=payload.manager_id,
        )
    except (ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return ShowroomOut.model_validate(showroom)


@router.get(
    "/{showroom_id}/staff",
    response_model=ShowroomStaffOut,
    summary="List showroom staff",
    responses=error_responses(401, 403, 404, 500),
)
def get_showroom_staff(
    showroom_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("showrooms.view")),
):
    try:
        staff = showroom_service.get_showroom_staff(db, showroom_id)
    except LookupError as exc:
        raise to_http_exception(exc) from exc
    return ShowroomStaffOut(items=[StaffMemberOut.model_validate(user) for user in staff])


@router.get(
    "/{showroom_id}/stats",
    response_model=ShowroomStatsOut,
    summary="Showroom staff and target summary",
    responses=error_responses(401, 403, 404, 500),
)
def get_showroom_stats(
    showroom_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("showrooms.view")),
):
    try:
        stats = showroom_service.get_showroom_stats(db, showroom_id)
    except LookupError as exc:
        raise to_http_exception(exc) from exc
    return ShowroomStatsOut(
        showroom=ShowroomOut.model_validate(stats["showroom"]),
        total_staff=stats["total_staff"],
        active_staff=stats["active_staff"],
        target_sales=stats["target_sales"],
    )
