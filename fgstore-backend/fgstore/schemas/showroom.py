from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

ShowroomStatus = Literal["active", "inactive", "suspended"]


class ShowroomCreateIn(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    code: str = Field(min_length=2, max_length=30)
    location: str = Field(min_length=2, max_length=255)
    city: str = Field(min_length=2, max_length=100)
    contact_number: str | None = Field(default=None, max_length=30)
    email: EmailStr | None = None
    manager_id: str | None = Field(default=None, max_length=36)
    status: ShowroomStatus = "active"
    opening_hours: dict[str, str] | None = None
    target_sales: Decimal = Field(default=Decimal("0"), ge=0)
    metadata: dict[str, Any] | None = None

    @field_validator("name", "code", "location", "city")
    @classmethod
    def strip_required(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("value cannot be empty")
        return cleaned

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Colombo Flagship",
                "code": "ds001",
                "location": "12 Galle Road",
                "city": "Colombo",
                "contact_number": "+94 11 234 5678",
                "target_sales": "250000.00",
            }
        }
    )


class ShowroomUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=120)
    code: str | None = Field(default=None, min_length=2, max_length=30)
    location: str | None = Field(default=None, min_length=2, max_length=255)
    city: str | None = Field(default=None, min_length=2, max_length=100)
    contact_number: str | None = Field(default=None, max_length=30)
    email: EmailStr | None = None
    manager_id: str | None = Field(default=None, max_length=36)
    status: ShowroomStatus | None = None
    opening_hours: dict[str, str] | None = None
    target_sales: Decimal | None = Field(default=None, ge=0)
    metadata: dict[str, Any] | None = None

    @field_validator("name", "code", "location", "city")
    @classmethod
    def strip_required(cls, value: str | None) -> str | None:
        if value is None:
            return value
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("value cannot be empty")
        return cleaned

    @model_validator(mode="after")
    def validate_any_field_present(self) -> "ShowroomUpdateIn":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class AssignManagerIn(BaseModel):
    manager_id: str | None = Field(default=None, max_length=36)


class ShowroomOut(BaseModel):
    id: str
    name: str
    code: str
    location: str
    city: str
    contact_number: str
    email: str
    manager_id: str | None = None
    status: str
    opening_hours: dict[str, str]
    target_sales: Decimal
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_json")
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ShowroomListOut(BaseModel):
    items: list[ShowroomOut]


class StaffMemberOut(BaseModel):
    id: str
    email: str
    display_name: str | None = None
    role: str
    status: str
    showroom_id: str | None = None
    showroom_name: str | None = None
    showroom_code: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ShowroomStaffOut(BaseModel):
    items: list[StaffMemberOut]


class ShowroomStatsOut(BaseModel):
    showroom: ShowroomOut
    total_staff: int
    active_staff: int
    target_sales: Decimal
