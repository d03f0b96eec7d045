"""Invoice schemas for API request/response."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from backoffice.models.invoice import InvoiceStatus


class LineItemIn(BaseModel):
    product_id: UUID
    quantity: int = Field(..., ge=1)


class InvoiceCreate(BaseModel):
    """Invoice intent. Missing lines/customer are rejected by the workflow, not here."""
    customer_id: UUID | None = None
    lines: list[LineItemIn] = Field(default_factory=list)
    # Percent; None means the configured default. Negative or junk values price as 0.
    discount: Decimal | float | str | None = None
    # Caller-declared total, checked against the computed one when given
    total_amount: Decimal | None = None
    status: InvoiceStatus = InvoiceStatus.DUE
    sn: str | None = Field(None, max_length=50)
    due_date: date | None = None


class InvoicePatch(BaseModel):
    """Fields an administrator may change. Anything else is rejected."""
    model_config = ConfigDict(extra="forbid")

    status: InvoiceStatus | None = None
    due_date: date | None = None
    discount: Decimal | None = Field(None, ge=0)
    # Full replacement list; products left out are returned to stock
    lines: list[LineItemIn] | None = Field(None, min_length=1)


class InvoiceLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: UUID
    name: str
    quantity: int
    price: Decimal


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sn: str
    status: InvoiceStatus
    discount: Decimal
    total_amount: Decimal
    due_date: date | None
    user_id: UUID
    customer_id: UUID
    lines: list[InvoiceLineResponse]
    created_at: datetime
    updated_at: datetime


class InvoiceListResponse(BaseModel):
    items: list[InvoiceResponse]
    total: int
    page: int
    size: int
