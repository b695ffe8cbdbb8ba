from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

LocationStatus = Literal["active", "inactive"]


class StorageLocationCreateIn(BaseModel):
    code: str = Field(min_length=2, max_length=30)
    name: str = Field(min_length=2, max_length=120)
    capacity: int | None = Field(default=None, ge=1)
    status: LocationStatus = "active"
    description: str | None = Field(default=None, max_length=255)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class StorageLocationUpdateIn(BaseModel):
    code: str | None = Field(default=None, min_length=2, max_length=30)
    name: str | None = Field(default=None, min_length=2, max_length=120)
    capacity: int | None = Field(default=None, ge=1)
    status: LocationStatus | None = None
    description: str | None = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def validate_any_field_present(self) -> "StorageLocationUpdateIn":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class StorageLocationOut(BaseModel):
    id: str
    code: str
    name: str
    capacity: int | None = None
    status: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StorageLocationListOut(BaseModel):
    items: list[StorageLocationOut]


class ActiveLocationCodesOut(BaseModel):
    codes: list[str]


class LocationUtilizationOut(BaseModel):
    location: StorageLocationOut
    item_count: int
    utilization: int


class LocationOverviewStatsOut(BaseModel):
    total_locations: int
    total_capacity: int
    used_capacity: int
    utilization: int
    full_locations: int
    empty_locations: int


class LocationOverviewOut(BaseModel):
    locations: list[LocationUtilizationOut]
    stats: LocationOverviewStatsOut
