"""Invoice & InvoiceLine models."""

import enum
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import String, Numeric, Integer, Enum, ForeignKey, Date, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.config import settings
from backoffice.db.base import Base
from backoffice.models.mixins import UUIDPrimaryKeyMixin, TimestampMixin


class InvoiceStatus(str, enum.Enum):
    DUE = "due"
    PAID = "paid"


# Stock consumed by an invoice in one of these states is final.
SETTLED_STATUSES = frozenset({InvoiceStatus.PAID})


class Invoice(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "invoices"
    __table_args__ = (
        Index("ix_invoices_status_created", "status", "created_at"),
    )

    sn: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus), default=InvoiceStatus.DUE, nullable=False
    )
    discount: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), default=settings.DEFAULT_DISCOUNT_RATE, nullable=False
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date)

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    # Weak reference: the customer keeps its own list of invoice ids
    customer_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)

    lines = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLine.position",
        lazy="selectin",
    )

    @property
    def is_settled(self) -> bool:
        return self.status in SETTLED_STATUSES

    def quantities(self) -> dict[uuid.UUID, int]:
        """Invoiced quantity per product."""
        totals: dict[uuid.UUID, int] = {}
        for line in self.lines:
            totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
        return totals

    def __repr__(self) -> str:
        return f"<Invoice {self.sn} total={self.total_amount} status={self.status}>"


class InvoiceLine(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "invoice_lines"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_invoice_lines_quantity_positive"),
        CheckConstraint("price >= 0", name="ck_invoice_lines_price_non_negative"),
    )

    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Snapshot of the stock item at invoicing time
    product_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )

    invoice = relationship("Invoice", back_populates="lines")

    def __repr__(self) -> str:
        return f"<InvoiceLine product={self.product_id} qty={self.quantity}>"
