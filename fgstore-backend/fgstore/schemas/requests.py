from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from fgstore.schemas.common import PaginationMeta

RequestType = Literal["direct_representative", "direct_shop", "distributor"]
Priority = Literal["low", "normal", "high", "urgent"]


class SalesRequestCreateIn(BaseModel):
    request_type: RequestType = Field(
        default="direct_representative",
        validation_alias=AliasChoices("request_type", "requestType"),
    )
    items: dict[str, Any] | str | None = None
    product: str | None = Field(default=None, max_length=120)
    quantity: float | str | None = None
    products: dict[str, Any] | list[Any] | str | None = None
    priority: Priority = "normal"
    notes: str | None = Field(default=None, max_length=2000)
    shop_name: str | None = Field(
        default=None,
        max_length=120,
        validation_alias=AliasChoices("shop_name", "shopName"),
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "request_type": "direct_representative",
                "items": {"tea-500": {"name": "Herbal Tea", "qty": 10}},
                "priority": "normal",
                "notes": "Weekly restock",
            }
        },
    )


class SalesRequestOut(BaseModel):
    id: str
    request_type: str
    requested_by: str | None = None
    requested_by_name: str | None = None
    requester_role: str | None = None
    items: Any = None
    product: str | None = None
    quantity: Any = None
    products: Any = None
    priority: str
    notes: str | None = None
    shop_name: str | None = None
    status: str
    created_at: datetime
    updated_at: datetime
    approved_at: datetime | None = None
    approved_by: str | None = None
    approver_name: str | None = None
    approver_role: str | None = None
    rejected_at: datetime | None = None
    rejected_by: str | None = None
    rejection_reason: str | None = None

    model_config = ConfigDict(from_attributes=True)


class SalesRequestListOut(BaseModel):
    items: list[SalesRequestOut]
    pagination: PaginationMeta


class ApproveRequestIn(BaseModel):
    approver_name: str | None = Field(default=None, max_length=120)
    approver_role: str | None = Field(default=None, max_length=50)


class RejectRequestIn(BaseModel):
    reason: str | None = Field(default=None, max_length=255)

    @field_validator("reason")
    @classmethod
    def normalize_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class ApprovalHistoryOut(BaseModel):
    id: str
    request_id: str
    request_type: str
    type: str
    items: dict[str, Any]
    total_quantity: float
    requester_id: str
    requester_name: str
    requester_role: str
    approved_by: str
    approver_name: str
    approver_role: str
    priority: str
    notes: str
    status: str
    shop_name: str
    is_dispatched: bool
    is_completed_by_fg: bool
    approved_at: datetime
    dispatched_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ApprovalHistoryListOut(BaseModel):
    items: list[ApprovalHistoryOut]
    pagination: PaginationMeta


class ApprovalOut(BaseModel):
    request: SalesRequestOut
    history: ApprovalHistoryOut
    verified: bool

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "request": {"id": "Kq3vN7xYtPz2mWb8", "status": "Approved"},
                "history": {"id": "Zb8mWq2yNc4tRk7P", "total_quantity": 10, "type": "direct_rep_sale"},
                "verified": True,
            }
        }
    )
