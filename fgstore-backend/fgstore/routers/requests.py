from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fgstore.core.api_docs import error_responses
from fgstore.core.deps import get_db
from fgstore.core.errors import to_http_exception
from fgstore.core.permissions import require_permission
from fgstore.core.security_current import Actor
from fgstore.schemas.common import pagination_meta
from fgstore.schemas.requests import (
    ApprovalHistoryListOut,
    ApprovalHistoryOut,
    ApprovalOut,
    ApproveRequestIn,
    RejectRequestIn,
    SalesRequestCreateIn,
    SalesRequestListOut,
    SalesRequestOut,
)
from fgstore.services import approval_service

router = APIRouter(prefix="/requests", tags=["requests"])
history_router = APIRouter(prefix="/approval-history", tags=["approval-history"])


@router.get(
    "",
    response_model=SalesRequestListOut,
    summary="List sales requests",
    responses=error_responses(401, 403, 422, 500),
)
def list_requests(
    status: str | None = Query(default=None, pattern="^(Pending|Approved|Rejected)$"),
    request_type: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("requests.view")),
):
    rows, total = approval_service.list_requests(
        db,
        status=status,
        request_type=request_type,
        limit=limit,
        offset=offset,
    )
    return SalesRequestListOut(
        items=[SalesRequestOut.model_validate(row) for row in rows],
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(rows)),
    )


@router.post(
    "",
    response_model=SalesRequestOut,
    status_code=201,
    summary="Submit a sales request",
    responses=error_responses(400, 401, 403, 422, 500),
)
def create_request(
    payload: SalesRequestCreateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("requests.create")),
):
    try:
        request = approval_service.create_request(db, actor=actor, payload=payload.model_dump())
    except (ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return SalesRequestOut.model_validate(request)


@router.get(
    "/{request_id}",
    response_model=SalesRequestOut,
    summary="Get sales request",
    responses=error_responses(401, 403, 404, 500),
)
def get_request(
    request_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("requests.view")),
):
    try:
        request = approval_service.get_request(db, request_id)
    except LookupError as exc:
        raise to_http_exception(exc) from exc
    return SalesRequestOut.model_validate(request)


@router.post(
    "/{request_id}/approve",
    response_model=ApprovalOut,
    summary="Approve a pending request",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def approve_request(
    request_id: str,
    payload: ApproveRequestIn | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("requests.approve")),
):
    approver = {}
    if payload is not None:
        if payload.approver_name:
            approver["approver_name"] = payload.approver_name
        if payload.approver_role:
            approver["approver_role"] = payload.approver_role
    try:
        result = approval_service.approve(db, request_id=request_id, actor=actor, approver=approver)
    except (ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return ApprovalOut(
        request=SalesRequestOut.model_validate(result.request),
        history=ApprovalHistoryOut.model_validate(result.history),
        verified=result.verified,
    )


@router.post(
    "/{request_id}/reject",
    response_model=SalesRequestOut,
    summary="Reject a pending request",
    responses=error_responses(401, 403, 404, 409, 422, 500),
)
def reject_request(
    request_id: str,
    payload: RejectRequestIn | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("requests.approve")),
):
    try:
        request = approval_service.reject(
            db,
            request_id=request_id,
            actor=actor,
            reason=payload.reason if payload else None,
        )
    except (ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return SalesRequestOut.model_validate(request)


@history_router.get(
    "",
    response_model=ApprovalHistoryListOut,
    summary="List approval history",
    responses=error_responses(401, 403, 422, 500),
)
def list_approval_history(
    is_dispatched: bool | None = Query(default=None),
    request_type: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("history.view")),
):
    rows, total = approval_service.list_history(
        db,
        is_dispatched=is_dispatched,
        request_type=request_type,
        limit=limit,
        offset=offset,
    )
    return ApprovalHistoryListOut(
        items=[ApprovalHistoryOut.model_validate(row) for row in rows],
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(rows)),
    )


@history_router.get(
    "/{history_id}",
    response_model=ApprovalHistoryOut,
    summary="Get approval history record",
    responses=error_responses(401, 403, 404, 500),
)
def get_approval_history(
    history_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("history.view")),
):
    try:
        history = approval_service.get_history(db, history_id)
    except LookupError as exc:
        raise to_http_exception(exc) from exc
    return ApprovalHistoryOut.model_validate(history)
