"""BackOfficeStore -- persistence collaborator used by the services.

The workflow never talks to a session directly. It needs record lookups,
a conditional decrement for stock, and a unit of work (flush / commit /
rollback). SqlBackOfficeStore implements this over an AsyncSession.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID

from backoffice.models.activity import ActivityLogEntry, EntityType
from backoffice.models.customer import Customer
from backoffice.models.invoice import Invoice, InvoiceStatus
from backoffice.models.stock import StockItem
from backoffice.models.user import User


@runtime_checkable
class BackOfficeStore(Protocol):

    # ── Stock ─────────────────────────────────────
    async def get_stock_item(self, product_id: UUID, *, for_update: bool = False) -> StockItem | None:
        """Read current persisted state. ``for_update`` takes a row lock until commit."""
        ...

    async def list_stock_items(
        self, *, offset: int, limit: int, search: str | None = None, low_stock_only: bool = False
    ) -> tuple[list[StockItem], int]:
        ...

    async def add_stock_item(self, item: StockItem) -> StockItem:
        ...

    async def delete_stock_item(self, item: StockItem) -> None:
        ...

    async def decrement_if_at_least(self, product_id: UUID, amount: int) -> int | None:
        """Atomically subtract ``amount`` if on-hand >= ``amount``.

        Returns the new on-hand quantity, or None when the guard failed or the
        product does not exist. Also recomputes ``is_low_stock``.
        """
        ...

    async def product_has_unsettled_invoice(self, product_id: UUID) -> bool:
        ...

    # ── Customers ─────────────────────────────────
    async def get_customer(self, customer_id: UUID) -> Customer | None:
        ...

    async def find_customer_by_contacts(self, contacts: str) -> Customer | None:
        ...

    async def list_customers(
        self, *, offset: int, limit: int, search: str | None = None
    ) -> tuple[list[Customer], int]:
        ...

    async def add_customer(self, customer: Customer) -> Customer:
        ...

    async def delete_customer(self, customer: Customer) -> None:
        ...

    # ── Invoices ──────────────────────────────────
    async def get_invoice(self, invoice_id: UUID, *, for_update: bool = False) -> Invoice | None:
        ...

    async def list_invoices(
        self,
        *,
        offset: int,
        limit: int,
        status: InvoiceStatus | None = None,
        customer_id: UUID | None = None,
        search: str | None = None,
    ) -> tuple[list[Invoice], int]:
        ...

    async def add_invoice(self, invoice: Invoice) -> Invoice:
        """Stage the invoice and assign its id."""
        ...

    async def delete_invoice(self, invoice: Invoice) -> None:
        ...

    # ── Users ─────────────────────────────────────
    async def get_user(self, user_id: UUID) -> User | None:
        ...

    async def find_user_by_email(self, email: str) -> User | None:
        ...

    async def list_users(self, *, offset: int, limit: int, search: str | None = None) -> tuple[list[User], int]:
        ...

    # ── Activity log ──────────────────────────────
    async def add_activity(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        ...

    async def list_activity(self, entity_type: EntityType, entity_id: UUID) -> list[ActivityLogEntry]:
        ...

    # ── Unit of work ──────────────────────────────
    async def flush(self) -> None:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...
