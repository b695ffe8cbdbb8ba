import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fgstore.core.errors import InvalidStateError, NotFoundError
from fgstore.core.observability import log_event
from fgstore.core.security_current import Actor
from fgstore.core.time_utils import utcnow
from fgstore.models.sales_request import SalesApprovalHistory, SalesRequest
from fgstore.services.audit_service import log_audit_event
from fgstore.services.notification_service import notify_approved_request
from fgstore.services.request_items import normalize_request_items
from fgstore.services.unit_of_work import UnitOfWork

PENDING = "Pending"
APPROVED = "Approved"
REJECTED = "Rejected"

DEFAULT_REJECTION_REASON = "Request rejected"

# request_type -> (history type tag, requester role, requester fallback name)
REQUEST_TYPE_PROFILES: dict[str, tuple[str, str, str]] = {
    "direct_representative": ("direct_rep_sale", "DirectRepresentative", "Direct Representative"),
    "direct_shop": ("direct_shop_sale", "DirectShopManager", "Direct Shop"),
    "distributor": ("distributor_sale", "Distributor", "Distributor"),
}


@dataclass(frozen=True)
class ApprovalResult:
    request: SalesRequest
    history: SalesApprovalHistory
    verified: bool


def _profile(request_type: str) -> tuple[str, str, str]:
    return REQUEST_TYPE_PROFILES.get(request_type, REQUEST_TYPE_PROFILES["direct_representative"])


def list_requests(
    db: Session,
    *,
    status: str | None = None,
    request_type: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[SalesRequest], int]:
    filters = []
    if status:
        filters.append(SalesRequest.status == status)
    if request_type:
        filters.append(SalesRequest.request_type == request_type)

    total = int(db.execute(select(func.count(SalesRequest.id)).where(*filters)).scalar_one())
    rows = db.execute(
        select(SalesRequest)
        .where(*filters)
        .order_by(SalesRequest.created_at.desc(), SalesRequest.id.desc())
        .offset(offset)
        .limit(limit)
    ).scalars().all()
    return list(rows), total


def get_request(db: Session, request_id: str) -> SalesRequest:
    request = db.execute(select(SalesRequest).where(SalesRequest.id == request_id)).scalar_one_or_none()
    if not request:
        raise NotFoundError("Request not found")
    return request


def create_request(db: Session, *, actor: Actor, payload: dict[str, Any]) -> SalesRequest:
    request_type = payload.get("request_type") or "direct_representative"
    if request_type not in REQUEST_TYPE_PROFILES:
        raise ValueError("Unsupported request type")

    request = SalesRequest(
        request_type=request_type,
        requested_by=actor.uid,
        requested_by_name=actor.display_name,
        requester_role=actor.role,
        items=payload.get("items"),
        product=payload.get("product"),
        quantity=payload.get("quantity"),
        products=payload.get("products"),
        priority=payload.get("priority") or "normal",
        notes=payload.get("notes"),
        shop_name=payload.get("shop_name"),
        status=PENDING,
    )
    db.add(request)
    db.flush()
    log_audit_event(
        db,
        actor=actor,
        action="sales_request.create",
        target_type="sales_request",
        target_id=request.id,
        metadata_json={"request_type": request_type},
    )
    db.commit()
    db.refresh(request)
    return request


def _ensure_pending(request: SalesRequest) -> None:
    if request.status != PENDING:
        raise InvalidStateError(f"Request is already {request.status.lower()}")


def approve(
    db: Session,
    *,
    request_id: str,
    actor: Actor,
    approver: dict[str, str] | None = None,
) -> ApprovalResult:
    """
    Approve a pending request.

    The status change and the approval history record commit together. Notifying the
    FG store is queued behind the commit and never fails the approval.
    """
    request = get_request(db, request_id)
    _ensure_pending(request)

    # Raises before anything is staged; the request stays Pending.
    canonical = normalize_request_items(
        items=request.items,
        product=request.product,
        quantity=request.quantity,
        products=request.products,
    )

    approver = approver or {}
    type_tag, requester_role, fallback_name = _profile(request.request_type)
    requester_name = request.requested_by_name or fallback_name
    now = utcnow()

    with UnitOfWork(db) as uow:
        request.status = APPROVED
        request.approved_at = now
        request.approved_by = approver.get("approved_by") or actor.uid
        request.approver_name = approver.get("approver_name") or actor.display_name
        request.approver_role = approver.get("approver_role") or actor.role
        request.updated_at = now

        history = uow.add(
            SalesApprovalHistory(
                request_id=request.id,
                request_type=request.request_type,
                type=type_tag,
                items=canonical.items,
                total_quantity=canonical.total_quantity,
                requester_id=request.requested_by or "",
                requester_name=requester_name,
                requester_role=request.requester_role or requester_role,
                approved_by=request.approved_by,
                approver_name=request.approver_name or "",
                approver_role=request.approver_role or "",
                priority=request.priority or "normal",
                notes=request.notes or "",
                status=APPROVED,
                shop_name=request.shop_name or requester_name,
                is_dispatched=False,
                is_completed_by_fg=False,
                approved_at=now,
            )
        )
        db.flush()
        history_id = history.id
        log_audit_event(
            db,
            actor=actor,
            action="sales_request.approve",
            target_type="sales_request",
            target_id=request.id,
            metadata_json={"history_id": history_id, "items_source": canonical.source},
        )
        uow.after_commit("notify_fg_store", lambda: notify_approved_request(db, history))
        uow.commit()

    verified = db.get(SalesApprovalHistory, history_id, populate_existing=True) is not None
    if not verified:
        log_event(
            "approval_history_unverified",
            level=logging.ERROR,
            sales_request_id=request.id,
            history_id=history_id,
        )

    log_event(
        "request_approved",
        sales_request_id=request.id,
        history_id=history_id,
        total_quantity=canonical.total_quantity,
        items_source=canonical.source,
    )
    return ApprovalResult(request=request, history=history, verified=verified)


def reject(db: Session, *, request_id: str, actor: Actor, reason: str | None = None) -> SalesRequest:
    request = get_request(db, request_id)
    _ensure_pending(request)

    now = utcnow()
    request.status = REJECTED
    request.rejected_at = now
    request.rejected_by = actor.uid
    request.rejection_reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
    request.updated_at = now
    log_audit_event(
        db,
        actor=actor,
        action="sales_request.reject",
        target_type="sales_request",
        target_id=request.id,
        metadata_json={"reason": request.rejection_reason},
    )
    db.commit()
    db.refresh(request)
    return request


def list_history(
    db: Session,
    *,
    is_dispatched: bool | None = None,
    request_type: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[SalesApprovalHistory], int]:
    filters = []
    if is_dispatched is not None:
        filters.append(SalesApprovalHistory.is_dispatched.is_(is_dispatched))
    if request_type:
        filters.append(SalesApprovalHistory.request_type == request_type)

    total = int(db.execute(select(func.count(SalesApprovalHistory.id)).where(*filters)).scalar_one())
    rows = db.execute(
        select(SalesApprovalHistory)
        .where(*filters)
        .order_by(SalesApprovalHistory.approved_at.desc(), SalesApprovalHistory.id.desc())
        .offset(offset)
        .limit(limit)
    ).scalars().all()
    return list(rows), total


def get_history(db: Session, history_id: str) -> SalesApprovalHistory:
    history = db.execute(
        select(SalesApprovalHistory).where(SalesApprovalHistory.id == history_id)
    ).scalar_one_or_none()
    if not history:
        raise NotFoundError("Approval history record not found")
    return history
