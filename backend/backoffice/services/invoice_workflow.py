"""Invoice lifecycle: the only way invoices are created, changed or removed.

Creation moves through

    Proposed -> StockReserved -> Persisted -> Linked -> Committed

and every validation gate before StockReserved can end it in Rejected. All
checks (customer, per-product stock, declared total) run before the first
write. The writes themselves run in one unit of work, so a failure at any
point rolls back every stock decrement, the invoice row and the customer
back-reference together.
"""

import logging
import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from uuid import UUID

from backoffice.core.config import settings
from backoffice.models.activity import ActivityAction, EntityType
from backoffice.models.invoice import Invoice, InvoiceLine
from backoffice.models.stock import StockItem
from backoffice.repositories.base import BackOfficeStore
from backoffice.schemas.auth import CurrentUser
from backoffice.schemas.invoice import InvoiceCreate, InvoicePatch, LineItemIn
from backoffice.services.activity_log import ActivityLog
from backoffice.services.customer_linkage import CustomerLinkage
from backoffice.services.errors import (
    BadRequestError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    WorkflowError,
)
from backoffice.services.pricing import compute, normalize_discount, totals_match
from backoffice.services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)


def generate_invoice_sn() -> str:
    """Human serial number: INV-YYYYMMDDHHMMSS-XXXX."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"INV-{stamp}-{secrets.token_hex(2).upper()}"


def aggregate_quantities(lines: list[LineItemIn]) -> dict[UUID, int]:
    """Total requested quantity per product; repeated products are summed."""
    totals: dict[UUID, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return totals


def describe_lines(lines) -> str:
    return ", ".join(f"{line.name} x{line.quantity}" for line in lines) or "none"


class InvoiceWorkflow:
    def __init__(self, store: BackOfficeStore):
        self.store = store
        self.activity = ActivityLog(store)
        self.ledger = StockLedger(store, self.activity)
        self.linkage = CustomerLinkage(store)

    @asynccontextmanager
    async def _unit_of_work(self, operation: str):
        try:
            yield
            await self.store.commit()
        except WorkflowError as exc:
            await self.store.rollback()
            logger.info("%s rejected (%s): %s", operation, exc.code, exc.message)
            raise
        except Exception as exc:
            await self.store.rollback()
            logger.exception("%s failed; changes rolled back", operation)
            raise InternalError(f"{operation} failed unexpectedly") from exc

    @staticmethod
    def _require_admin(identity: CurrentUser, action: str) -> None:
        if not identity.is_admin:
            raise UnauthorizedError(f"Only admin can {action}")

    # ── Create ────────────────────────────────────

    async def create_invoice(self, intent: InvoiceCreate, identity: CurrentUser) -> Invoice:
        async with self._unit_of_work("create invoice"):
            if not intent.lines or intent.customer_id is None:
                raise BadRequestError("Products and customer are required")

            customer = await self.store.get_customer(intent.customer_id)
            if customer is None:
                raise NotFoundError(f'Customer with ID "{intent.customer_id}" not found')

            quantities = aggregate_quantities(intent.lines)
            items, problems = await self.ledger.check_all(quantities)
            if problems:
                raise BadRequestError("Some products cannot be invoiced", problems)

            lines = [
                InvoiceLine(
                    position=position,
                    product_id=line.product_id,
                    name=items[line.product_id].name,
                    quantity=line.quantity,
                    price=items[line.product_id].price,
                )
                for position, line in enumerate(intent.lines)
            ]
            discount = normalize_discount(
                settings.DEFAULT_DISCOUNT_RATE if intent.discount is None else intent.discount
            )
            pricing = compute(lines, discount)
            if intent.total_amount is not None and not totals_match(
                intent.total_amount, pricing.total, settings.TOTAL_TOLERANCE
            ):
                raise BadRequestError(
                    f"Declared total {intent.total_amount} does not match computed total {pricing.total}"
                )

            sn = intent.sn or generate_invoice_sn()
            await self.ledger.reserve(quantities, identity, reference=sn)

            invoice = Invoice(
                sn=sn,
                status=intent.status,
                discount=discount,
                total_amount=pricing.total,
                due_date=intent.due_date,
                user_id=identity.id,
                customer_id=customer.id,
                lines=lines,
            )
            await self.store.add_invoice(invoice)
            await self.activity.record(
                EntityType.INVOICE,
                invoice.id,
                identity,
                ActivityAction.CREATE,
                f"Invoice {sn} created for {customer.name}: {describe_lines(lines)}, total {pricing.total}",
            )

            await self.linkage.append_invoice_ref(customer.id, invoice.id)

        logger.info("Invoice %s created by %s, total=%s", invoice.sn, identity.id, invoice.total_amount)
        return invoice

    # ── Update ────────────────────────────────────

    def _rebuild_lines(
        self, invoice: Invoice, requested: list[LineItemIn], items: dict[UUID, StockItem]
    ) -> list[InvoiceLine]:
        # Products already on the invoice keep their frozen name and price
        snapshots = {line.product_id: (line.name, line.price) for line in invoice.lines}
        for product_id, item in items.items():
            snapshots.setdefault(product_id, (item.name, item.price))

        rebuilt = []
        for position, line in enumerate(requested):
            name, price = snapshots[line.product_id]
            rebuilt.append(
                InvoiceLine(
                    position=position,
                    product_id=line.product_id,
                    name=name,
                    quantity=line.quantity,
                    price=price,
                )
            )
        return rebuilt

    async def update_invoice(self, invoice_id: UUID, patch: InvoicePatch, identity: CurrentUser) -> Invoice:
        self._require_admin(identity, "update invoices")

        async with self._unit_of_work("update invoice"):
            invoice = await self.store.get_invoice(invoice_id, for_update=True)
            if invoice is None:
                raise NotFoundError(f"No invoice found with id: {invoice_id}")

            fields = patch.model_fields_set
            changes: list[str] = []

            if "lines" in fields and patch.lines is not None:
                previous = invoice.quantities()
                wanted = aggregate_quantities(patch.lines)
                diffs = {
                    product_id: wanted.get(product_id, 0) - previous.get(product_id, 0)
                    for product_id in previous.keys() | wanted.keys()
                }
                to_take = {pid: diff for pid, diff in diffs.items() if diff > 0}

                items, problems = await self.ledger.check_all(to_take)
                if problems:
                    raise BadRequestError("Update would take stock below zero", problems)

                new_lines = self._rebuild_lines(invoice, patch.lines, items)
                await self.ledger.rebalance(diffs, identity, reference=invoice.sn)

                old_description = describe_lines(invoice.lines)
                new_description = describe_lines(new_lines)
                if old_description != new_description:
                    changes.append(f"products {old_description} -> {new_description}")
                invoice.lines = new_lines

            if "discount" in fields and patch.discount is not None and patch.discount != invoice.discount:
                changes.append(f"discount {invoice.discount}% -> {patch.discount}%")
                invoice.discount = patch.discount

            if "status" in fields and patch.status is not None and patch.status != invoice.status:
                changes.append(f"status {invoice.status.value} -> {patch.status.value}")
                invoice.status = patch.status

            if "due_date" in fields and patch.due_date != invoice.due_date:
                changes.append(f"due date {invoice.due_date} -> {patch.due_date}")
                invoice.due_date = patch.due_date

            pricing = compute(invoice.lines, invoice.discount)
            if not totals_match(invoice.total_amount, pricing.total, settings.TOTAL_TOLERANCE):
                changes.append(f"amount {invoice.total_amount} -> {pricing.total}")
                invoice.total_amount = pricing.total

            await self.store.flush()
            if changes:
                await self.activity.record(
                    EntityType.INVOICE,
                    invoice.id,
                    identity,
                    ActivityAction.UPDATE,
                    f"Invoice {invoice.sn} updated: " + "; ".join(changes),
                )

        logger.info("Invoice %s updated by %s (%d change(s))", invoice.sn, identity.id, len(changes))
        return invoice

    # ── Delete ────────────────────────────────────

    async def delete_invoice(self, invoice_id: UUID, identity: CurrentUser) -> None:
        self._require_admin(identity, "delete invoices")

        async with self._unit_of_work("delete invoice"):
            invoice = await self.store.get_invoice(invoice_id, for_update=True)
            if invoice is None:
                raise NotFoundError(f"No invoice found with id: {invoice_id}")

            if invoice.is_settled:
                logger.info("Invoice %s is %s; stock is not restored", invoice.sn, invoice.status.value)
            else:
                await self.ledger.release(invoice.quantities(), identity, reference=invoice.sn)

            await self.linkage.remove_invoice_ref(invoice.customer_id, invoice.id)
            await self.activity.record(
                EntityType.INVOICE,
                invoice.id,
                identity,
                ActivityAction.DELETE,
                f"Invoice {invoice.sn} deleted while {invoice.status.value}",
            )
            await self.store.delete_invoice(invoice)

        logger.info("Invoice %s deleted by %s", invoice.sn, identity.id)

    # ── Stock ─────────────────────────────────────

    async def adjust_stock(
        self, product_id: UUID, delta: int, identity: CurrentUser, note: str | None = None
    ) -> StockItem:
        async with self._unit_of_work("adjust stock"):
            item = await self.ledger.apply_delta(
                product_id, delta, identity, ActivityAction.STOCK_UPDATE, note
            )
        return item
