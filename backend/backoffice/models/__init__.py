"""SQLAlchemy models for the back office."""

from backoffice.models.user import User, RoleType
from backoffice.models.stock import StockItem
from backoffice.models.customer import Customer, CustomerInvoiceRef
from backoffice.models.invoice import Invoice, InvoiceLine, InvoiceStatus
from backoffice.models.activity import ActivityLogEntry, ActivityAction, EntityType

__all__ = [
    "User",
    "RoleType",
    "StockItem",
    "Customer",
    "CustomerInvoiceRef",
    "Invoice",
    "InvoiceLine",
    "InvoiceStatus",
    "ActivityLogEntry",
    "ActivityAction",
    "EntityType",
]
