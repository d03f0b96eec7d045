"""Customer endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError

from backoffice.core.deps import get_current_user, get_store, require_role
from backoffice.models.activity import ActivityAction, EntityType
from backoffice.models.customer import Customer
from backoffice.repositories.base import BackOfficeStore
from backoffice.schemas.activity import ActivityLogEntryResponse, ActivityLogResponse
from backoffice.schemas.auth import CurrentUser
from backoffice.schemas.customer import (
    CustomerCreate,
    CustomerListResponse,
    CustomerResponse,
    CustomerUpdate,
)
from backoffice.services.activity_log import ActivityLog

router = APIRouter(prefix="/customers", tags=["customers"])


async def _get_or_404(store: BackOfficeStore, customer_id: UUID) -> Customer:
    customer = await store.get_customer(customer_id)
    if not customer:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Customer not found",
        )
    return customer


def _duplicate_contacts() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Customer with these contacts already exists",
    )


async def _ensure_contacts_free(store: BackOfficeStore, contacts: str | None, owner_id: UUID | None = None):
    if not contacts:
        return
    existing = await store.find_customer_by_contacts(contacts)
    if existing and existing.id != owner_id:
        raise _duplicate_contacts()


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    search: str | None = None,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    """List customers with pagination and optional name search."""
    items, total = await store.list_customers(offset=(page - 1) * size, limit=size, search=search)
    return CustomerListResponse(
        items=[CustomerResponse.model_validate(c) for c in items],
        total=total,
        page=page,
        size=size,
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    customer = await _get_or_404(store, customer_id)
    return CustomerResponse.model_validate(customer)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    body: CustomerCreate,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    """Create a customer. Contacts must be unique."""
    await _ensure_contacts_free(store, body.contacts)

    # A new customer has no invoices yet; set it so the response never lazy-loads
    customer = Customer(**body.model_dump(), invoice_refs=[])
    try:
        await store.add_customer(customer)
    except IntegrityError:
        # Lost a race with another insert of the same contacts
        await store.rollback()
        raise _duplicate_contacts()
    await ActivityLog(store).record(
        EntityType.CUSTOMER,
        customer.id,
        current_user,
        ActivityAction.CREATE,
        f"Customer {customer.name} created",
    )
    await store.commit()
    return CustomerResponse.model_validate(customer)


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: UUID,
    body: CustomerUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    customer = await _get_or_404(store, customer_id)
    updates = body.model_dump(exclude_unset=True)
    if "contacts" in updates:
        await _ensure_contacts_free(store, updates["contacts"], owner_id=customer.id)

    changed = [field for field, value in updates.items() if getattr(customer, field) != value]
    for field in changed:
        setattr(customer, field, updates[field])

    try:
        if changed:
            await ActivityLog(store).record(
                EntityType.CUSTOMER,
                customer.id,
                current_user,
                ActivityAction.UPDATE,
                f"Updated {', '.join(changed)}",
            )
        await store.commit()
    except IntegrityError:
        # Contacts taken by a concurrent update
        await store.rollback()
        raise _duplicate_contacts()
    return CustomerResponse.model_validate(customer)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: UUID,
    current_user: CurrentUser = Depends(require_role("admin")),
    store: BackOfficeStore = Depends(get_store),
):
    """Delete a customer (admin only). Invoices keep their customer id."""
    customer = await _get_or_404(store, customer_id)
    await store.delete_customer(customer)
    await store.commit()


@router.get("/{customer_id}/activity", response_model=ActivityLogResponse)
async def get_customer_activity(
    customer_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    await _get_or_404(store, customer_id)
    entries = await ActivityLog(store).history(EntityType.CUSTOMER, customer_id)
    return ActivityLogResponse(
        items=[ActivityLogEntryResponse.model_validate(e) for e in entries],
        count=len(entries),
    )
