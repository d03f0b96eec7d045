"""Customer -> invoice back-references."""

from uuid import UUID

from backoffice.models.customer import Customer, CustomerInvoiceRef
from backoffice.repositories.base import BackOfficeStore
from backoffice.services.errors import NotFoundError


class CustomerLinkage:
    def __init__(self, store: BackOfficeStore):
        self.store = store

    async def append_invoice_ref(self, customer_id: UUID, invoice_id: UUID) -> Customer:
        """Append one reference. Not idempotent: call once per created invoice."""
        customer = await self.store.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(f"No customer found with ID: {customer_id}")

        customer.invoice_refs.append(CustomerInvoiceRef(invoice_id=invoice_id))
        await self.store.flush()
        return customer

    async def remove_invoice_ref(self, customer_id: UUID, invoice_id: UUID) -> int:
        """Drop every reference to ``invoice_id``; returns how many were removed."""
        customer = await self.store.get_customer(customer_id)
        if customer is None:
            return 0

        stale = [ref for ref in customer.invoice_refs if ref.invoice_id == invoice_id]
        for ref in stale:
            customer.invoice_refs.remove(ref)
        await self.store.flush()
        return len(stale)
