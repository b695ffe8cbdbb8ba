from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

InventoryType = Literal["bulk", "units"]
QualityGrade = Literal["A", "B", "C", "D"]


class BulkStockIn(BaseModel):
    product_id: str = Field(min_length=1, max_length=60)
    product_name: str = Field(min_length=1, max_length=120)
    batch_number: str = Field(min_length=1, max_length=60)
    quantity: Decimal = Field(gt=0)
    unit: str = Field(default="kg", min_length=1, max_length=20)
    quality_grade: QualityGrade = "A"
    expiry_date: date | None = None
    location: str | None = Field(default=None, max_length=30)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": "HONEY001",
                "product_name": "Honey Syrup",
                "batch_number": "BATCH001",
                "quantity": "100",
                "unit": "L",
                "quality_grade": "A",
                "expiry_date": "2027-12-31",
                "location": "FG-A1",
            }
        }
    )


class PackagedStockIn(BaseModel):
    product_id: str = Field(min_length=1, max_length=60)
    product_name: str = Field(min_length=1, max_length=120)
    variant_name: str = Field(min_length=1, max_length=60)
    variant_size: str = Field(min_length=1, max_length=20)
    variant_unit: str = Field(min_length=1, max_length=20)
    batch_number: str = Field(min_length=1, max_length=60)
    units_received: int = Field(gt=0, validation_alias=AliasChoices("units_received", "unitsReceived"))
    quality_grade: QualityGrade = "A"
    expiry_date: date | None = None
    location: str | None = Field(default=None, max_length=30)

    model_config = ConfigDict(populate_by_name=True)


class StockAdjustIn(BaseModel):
    inventory_type: InventoryType
    delta: Decimal
    reason: str = Field(min_length=3, max_length=80)

    @field_validator("delta")
    @classmethod
    def validate_non_zero_delta(cls, value: Decimal) -> Decimal:
        if value == 0:
            raise ValueError("delta cannot be zero")
        return value


class BulkBatchOut(BaseModel):
    id: str
    product_id: str
    product_name: str
    batch_number: str
    quantity: Decimal
    unit: str
    quality_grade: str
    expiry_date: date | None = None
    location: str
    release_code: str
    received_from: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PackagedBatchOut(BaseModel):
    id: str
    product_id: str
    product_name: str
    variant_name: str
    variant_size: str
    variant_unit: str
    batch_number: str
    units_in_stock: int
    quality_grade: str
    expiry_date: date | None = None
    location: str
    release_code: str
    received_from: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BulkBatchListOut(BaseModel):
    items: list[BulkBatchOut]


class PackagedBatchListOut(BaseModel):
    items: list[PackagedBatchOut]


class StockMovementOut(BaseModel):
    id: str
    movement_type: str
    category: str
    inventory_id: str
    product_id: str
    product_name: str
    variant_name: str | None = None
    batch_number: str
    quantity: Decimal
    reason: str
    reference_id: str | None = None
    created_by: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StockMovementListOut(BaseModel):
    items: list[StockMovementOut]


class ExpiryItemOut(BaseModel):
    batch_id: str
    inventory_type: str
    product_id: str
    product_name: str
    variant_name: str | None = None
    batch_number: str
    location: str
    quantity: Decimal | int
    expiry_date: date
    days_to_expiry: int
    status: str


class ExpirySummaryOut(BaseModel):
    total: int
    expired: int
    critical: int
    warning: int


class ExpiryReportOut(BaseModel):
    items: list[ExpiryItemOut]
    summary: ExpirySummaryOut
