from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

PriceType = Literal["retail", "wholesale", "distributor", "special"]


class PriceUpdateIn(BaseModel):
    price: Decimal = Field(gt=0)
    currency: str = Field(default="LKR", min_length=3, max_length=3)
    price_type: PriceType = Field(default="retail", validation_alias=AliasChoices("price_type", "priceType"))
    product_id: str | None = Field(default=None, max_length=60)
    product_name: str | None = Field(default=None, max_length=120)
    variant_name: str | None = Field(default=None, max_length=60)
    change_reason: str | None = Field(default=None, max_length=255)
    effective_date: datetime | None = None

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "price": "275.00",
                "currency": "LKR",
                "price_type": "retail",
                "product_name": "Herbal Tea",
                "variant_name": "500g",
                "change_reason": "Supplier cost increase",
            }
        },
    )


class ProductPriceOut(BaseModel):
    product_key: str
    product_id: str
    product_name: str | None = None
    variant_name: str | None = None
    price: Decimal
    currency: str
    price_type: str
    effective_date: datetime
    change_reason: str | None = None
    updated_by: str | None = None
    updated_by_name: str | None = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductPriceListOut(BaseModel):
    items: list[ProductPriceOut]


class PriceHistoryOut(BaseModel):
    id: str
    product_key: str
    product_id: str
    product_name: str
    previous_price: Decimal
    new_price: Decimal
    change_amount: Decimal
    change_percentage: float
    change_type: str
    currency: str
    price_type: str
    change_reason: str | None = None
    changed_by: str | None = None
    changed_by_name: str | None = None
    effective_date: datetime | None = None
    recorded_at: datetime


class PriceHistorySummaryOut(BaseModel):
    total_changes: int
    increases: int
    decreases: int
    average_change_percentage: float
    unique_products: int


class PriceHistoryListOut(BaseModel):
    items: list[PriceHistoryOut]
    summary: PriceHistorySummaryOut


class PriceChangeOut(BaseModel):
    id: str
    previous_price: Decimal
    new_price: Decimal
    change_reason: str | None = None
    changed_by_name: str | None = None
    recorded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PricingAnalyticsOut(BaseModel):
    product_key: str
    current_price: Decimal
    currency: str
    total_changes: int
    min_price: Decimal
    max_price: Decimal
    avg_price: Decimal
    price_volatility: float
    last_change: PriceChangeOut
    recent_changes: list[PriceChangeOut]
