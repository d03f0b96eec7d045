"""Stock item schemas for request/response."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backoffice.core.config import settings


class StockItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., ge=0, decimal_places=2)
    brand: str | None = Field(None, max_length=255)
    dosage: str | None = Field(None, max_length=100)
    low_stock_threshold: int = Field(settings.LOW_STOCK_THRESHOLD, ge=0)


class StockItemCreate(StockItemBase):
    quantity: int = Field(0, ge=0, description="Opening on-hand quantity")


class StockItemUpdate(BaseModel):
    """Editable catalogue fields. Quantity changes go through /adjust."""
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=255)
    price: Decimal | None = Field(None, ge=0, decimal_places=2)
    brand: str | None = Field(None, max_length=255)
    dosage: str | None = Field(None, max_length=100)
    low_stock_threshold: int | None = Field(None, ge=0)

    @field_validator("name", "price", "low_stock_threshold")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class StockAdjustment(BaseModel):
    """Sold or returned units; mirrors the soldQuantity/returnedQuantity pair."""
    sold_quantity: int = Field(0, ge=0)
    returned_quantity: int = Field(0, ge=0)
    note: str | None = Field(None, max_length=500)

    @property
    def delta(self) -> int:
        return self.returned_quantity - self.sold_quantity


class StockItemResponse(StockItemBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    quantity: int
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime


class StockItemListResponse(BaseModel):
    items: list[StockItemResponse]
    total: int
    page: int
    size: int
