from backoffice.schemas.auth import CurrentUser
from backoffice.schemas.stock import (
    StockItemCreate, StockItemUpdate, StockAdjustment, StockItemResponse, StockItemListResponse,
)
from backoffice.schemas.customer import (
    CustomerCreate, CustomerUpdate, CustomerResponse, CustomerListResponse,
)
from backoffice.schemas.invoice import (
    LineItemIn, InvoiceCreate, InvoicePatch, InvoiceResponse, InvoiceListResponse,
)
from backoffice.schemas.activity import ActivityLogEntryResponse, ActivityLogResponse
from backoffice.schemas.user import UserResponse, UserListResponse, UserProfileUpdate, UserRoleUpdate

__all__ = [
    "CurrentUser",
    "StockItemCreate", "StockItemUpdate", "StockAdjustment", "StockItemResponse", "StockItemListResponse",
    "CustomerCreate", "CustomerUpdate", "CustomerResponse", "CustomerListResponse",
    "LineItemIn", "InvoiceCreate", "InvoicePatch", "InvoiceResponse", "InvoiceListResponse",
    "ActivityLogEntryResponse", "ActivityLogResponse",
    "UserResponse", "UserListResponse", "UserProfileUpdate", "UserRoleUpdate",
]
