"""Customer model and its invoice back-references."""

import uuid

from sqlalchemy import String, Integer, Text, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base
from backoffice.models.mixins import UUIDPrimaryKeyMixin, TimestampMixin


class Customer(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contacts: Mapped[str | None] = mapped_column(String(50), unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str] = mapped_column(Text, nullable=False)

    invoice_refs = relationship(
        "CustomerInvoiceRef",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="CustomerInvoiceRef.position",
        lazy="selectin",
    )

    @property
    def invoice_ids(self) -> list[uuid.UUID]:
        return [ref.invoice_id for ref in self.invoice_refs]

    def __repr__(self) -> str:
        return f"<Customer {self.name}>"


class CustomerInvoiceRef(Base):
    """Id-only pointer from a customer to one of its invoices (no FK on the invoice)."""

    __tablename__ = "customer_invoice_refs"

    position: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invoice_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)

    customer = relationship("Customer", back_populates="invoice_refs")

    def __repr__(self) -> str:
        return f"<CustomerInvoiceRef customer={self.customer_id} invoice={self.invoice_id}>"
