from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fgstore.core.api_docs import error_responses
from fgstore.core.deps import get_db
from fgstore.core.permissions import require_permission
from fgstore.core.security_current import Actor
from fgstore.schemas.imports import (
    ProductImportIn,
    ProductImportOut,
    ProductImportValidationOut,
    RowValidationOut,
)
from fgstore.services import product_import_service
from fgstore.services.location_service import active_location_codes
from fgstore.services.product_import_service import RowValidation

router = APIRouter(prefix="/imports", tags=["imports"])


def validation_out(rows: list[RowValidation]) -> ProductImportValidationOut:
    valid_rows = sum(1 for row in rows if row.is_valid)
    return ProductImportValidationOut(
        total_rows=len(rows),
        valid_rows=valid_rows,
        invalid_rows=len(rows) - valid_rows,
        rows=[
            RowValidationOut(
                row_number=row.row_number,
                is_valid=row.is_valid,
                errors=row.errors,
                warnings=row.warnings,
            )
            for row in rows
        ],
    )


@router.post(
    "/products/validate",
    response_model=ProductImportValidationOut,
    summary="Validate product upload rows without writing",
    responses=error_responses(401, 403, 422, 500),
)
def validate_product_rows(
    payload: ProductImportIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("imports.run")),
):
    rows = product_import_service.validate_rows(payload.rows, active_location_codes(db))
    return validation_out(rows)


@router.post(
    "/products",
    response_model=ProductImportOut,
    summary="Import product upload rows into inventory and pricing",
    responses=error_responses(401, 403, 422, 500),
)
def import_products(
    payload: ProductImportIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_permission("imports.run")),
):
    result = product_import_service.import_rows(db, actor=actor, rows=payload.rows)
    return ProductImportOut(
        success_count=result["success_count"],
        error_count=result["error_count"],
        errors=result["errors"],
        validation=validation_out(result["validation"]),
    )
