from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

InventoryType = Literal["bulk", "units"]


class BatchOptionOut(BaseModel):
    batch_id: str
    inventory_type: str
    product_id: str
    product_name: str
    batch_number: str
    location: str
    available: Decimal | int
    variant_name: str | None = None
    quality_grade: str | None = None
    expiry_date: date | None = None

    model_config = ConfigDict(from_attributes=True)


class DispatchItemOptionsOut(BaseModel):
    item_id: str
    name: str
    approved_qty: int
    batches: list[BatchOptionOut]


class DispatchOptionsOut(BaseModel):
    history_id: str
    items: list[DispatchItemOptionsOut]


class DispatchBatchIn(BaseModel):
    batch_id: str = Field(min_length=1, max_length=36)
    inventory_type: InventoryType
    quantity: int = Field(ge=0)


class DispatchItemIn(BaseModel):
    dispatch_qty: int | str | None = None
    batches: list[DispatchBatchIn] = Field(default_factory=list)


class DispatchCreateIn(BaseModel):
    items: dict[str, DispatchItemIn] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=2000)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "items": {
                    "tea-500": {
                        "dispatch_qty": 50,
                        "batches": [
                            {"batch_id": "Bt7kW2nQ", "inventory_type": "units", "quantity": 30},
                            {"batch_id": "Cx9pL4mR", "inventory_type": "units", "quantity": 20},
                        ],
                    }
                },
                "notes": "Loaded on van 2",
            }
        }
    )


class DispatchLineOut(BaseModel):
    id: str
    item_id: str
    item_name: str
    approved_qty: int
    dispatch_qty: int
    batch_id: str
    batch_number: str
    location: str
    inventory_type: str
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class DispatchOut(BaseModel):
    id: str
    history_id: str
    request_id: str
    release_code: str
    recipient_type: str
    recipient_id: str
    recipient_name: str
    shop_name: str | None = None
    dispatched_by: str
    dispatched_by_name: str
    dispatched_by_role: str
    notes: str
    total_items: int
    total_quantity: int
    total_value: Decimal
    status: str
    dispatched_at: datetime
    lines: list[DispatchLineOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class DispatchResultOut(BaseModel):
    dispatch: DispatchOut
    is_completed_by_fg: bool
