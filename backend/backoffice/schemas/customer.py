"""Customer schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    contacts: str | None = Field(None, max_length=50)
    email: EmailStr | None = None
    address: str = Field(..., min_length=3)


class CustomerUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=2, max_length=255)
    contacts: str | None = Field(None, max_length=50)
    email: EmailStr | None = None
    address: str | None = Field(None, min_length=3)

    @field_validator("name", "address")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    contacts: str | None
    email: str | None
    address: str
    invoice_ids: list[UUID]
    created_at: datetime
    updated_at: datetime


class CustomerListResponse(BaseModel):
    items: list[CustomerResponse]
    total: int
    page: int
    size: int
