from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProductImportIn(BaseModel):
    rows: list[dict[str, Any]] = Field(min_length=1, max_length=5000)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "rows": [
                    {
                        "Product Type": "bulk",
                        "Product Name": "Honey Syrup",
                        "Product ID": "HONEY001",
                        "Batch Number": "BATCH001",
                        "Quantity": "100",
                        "Unit": "L",
                        "Quality Grade": "A",
                        "Expiry Date (YYYY-MM-DD)": "2027-12-31",
                        "Location": "FG-A1",
                        "Price": "500",
                        "Currency": "LKR",
                        "Price Type": "retail",
                    }
                ]
            }
        }
    )


class RowValidationOut(BaseModel):
    row_number: int
    is_valid: bool
    errors: list[str]
    warnings: list[str]


class ProductImportValidationOut(BaseModel):
    total_rows: int
    valid_rows: int
    invalid_rows: int
    rows: list[RowValidationOut]


class ProductImportOut(BaseModel):
    success_count: int
    error_count: int
    errors: list[str]
    validation: ProductImportValidationOut
