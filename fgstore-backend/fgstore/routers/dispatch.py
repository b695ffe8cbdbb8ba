from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fgstore.core.api_docs import error_responses
from fgstore.core.deps import get_db
from fgstore.core.errors import to_http_exception
from fgstore.core.permissions import require_permission
from fgstore.core.security_current import Actor
from fgstore.models.dispatch import FgDispatch, FgDispatchLine
from fgstore.schemas.dispatch import (
    BatchOptionOut,
    DispatchCreateIn,
    DispatchItemOptionsOut,
    DispatchLineOut,
    DispatchOptionsOut,
    DispatchOut,
    DispatchResultOut,
)
from fgstore.services import dispatch_service
from fgstore.services.approval_service import get_history
from fgstore.services.dispatch_allocator import DispatchAllocation

router = APIRouter(prefix="/dispatch", tags=["dispatch"])


def _dispatch_out(dispatch: FgDispatch, lines: list[FgDispatchLine]) -> DispatchOut:
    return DispatchOut.model_validate(dispatch).model_copy(
        update={"lines": [DispatchLineOut.model_validate(line) for line in lines]}
    )


@router.get(
    "/records/{dispatch_id}",
    response_model=DispatchOut,
    summary="Get dispatch record",
    responses=error_responses(401, 403, 404, 500),
)
def get_dispatch(
    dispatch_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("history.view")),
):
    try:
        dispatch, lines = dispatch_service.get_dispatch(db, dispatch_id)
    except LookupError as exc:
        raise to_http_exception(exc) from exc
    return _dispatch_out(dispatch, lines)


@router.get(
    "/{history_id}/options",
    response_model=DispatchOptionsOut,
    summary="List batches available for each approved item",
    responses=error_responses(401, 403, 404, 500),
)
def get_dispatch_options(
    history_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("dispatch.manage")),
):
    try:
        history = get_history(db, history_id)
        options = dispatch_service.dispatch_options(db, history_id)
    except LookupError as exc:
        raise to_http_exception(exc) from exc

    allocation = DispatchAllocation.from_history(history)
    return DispatchOptionsOut(
        history_id=history.id,
        items=[
            DispatchItemOptionsOut(
                item_id=item_id,
                name=item.name,
                approved_qty=item.approved_qty,
                batches=[BatchOptionOut.model_validate(option) for option in options.get(item_id, [])],
            )
            for item_id, item in allocation.items.items()
        ],
    )


@router.post(
    "/{history_id}",
    response_model=DispatchResultOut,
    status_code=201,
    summary="Dispatch an approved request",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def create_dispatch(
    history_id: str,
    payload: DispatchCreateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("dispatch.manage")),
):
    try:
        result = dispatch_service.dispatch_request(
            db,
            history_id=history_id,
            actor=actor,
            submission=payload.model_dump(exclude_none=True),
        )
    except (ValueError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return DispatchResultOut(
        dispatch=_dispatch_out(result.dispatch, result.lines),
        is_completed_by_fg=result.history.is_completed_by_fg,
    )
