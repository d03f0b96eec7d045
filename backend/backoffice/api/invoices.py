"""Invoice endpoints. Every write goes through InvoiceWorkflow."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from backoffice.core.deps import get_current_user, get_store, get_workflow
from backoffice.models.activity import EntityType
from backoffice.models.invoice import InvoiceStatus
from backoffice.repositories.base import BackOfficeStore
from backoffice.schemas.activity import ActivityLogEntryResponse, ActivityLogResponse
from backoffice.schemas.auth import CurrentUser
from backoffice.schemas.invoice import (
    InvoiceCreate,
    InvoiceListResponse,
    InvoicePatch,
    InvoiceResponse,
)
from backoffice.services.activity_log import ActivityLog
from backoffice.services.invoice_workflow import InvoiceWorkflow

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    status_filter: InvoiceStatus | None = Query(None, alias="status"),
    customer_id: UUID | None = None,
    search: str | None = None,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    """List invoices, optionally filtered by status, customer or serial number fragment."""
    items, total = await store.list_invoices(
        offset=(page - 1) * size,
        limit=size,
        status=status_filter,
        customer_id=customer_id,
        search=search,
    )
    return InvoiceListResponse(
        items=[InvoiceResponse.model_validate(invoice) for invoice in items],
        total=total,
        page=page,
        size=size,
    )


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    invoice = await store.get_invoice(invoice_id)
    if not invoice:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invoice not found",
        )
    return InvoiceResponse.model_validate(invoice)


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    body: InvoiceCreate,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: InvoiceWorkflow = Depends(get_workflow),
):
    """Create an invoice and take its stock in one transaction.

    Any missing product or short stock rejects the whole invoice with
    every problem listed.
    """
    invoice = await workflow.create_invoice(body, current_user)
    return InvoiceResponse.model_validate(invoice)


@router.patch("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: UUID,
    body: InvoicePatch,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: InvoiceWorkflow = Depends(get_workflow),
):
    """Admin only. Changing lines takes or returns only the difference."""
    invoice = await workflow.update_invoice(invoice_id, body, current_user)
    return InvoiceResponse.model_validate(invoice)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: InvoiceWorkflow = Depends(get_workflow),
):
    """Admin only. Stock of a due invoice goes back on the shelf; paid stock does not."""
    await workflow.delete_invoice(invoice_id, current_user)


@router.get("/{invoice_id}/activity", response_model=ActivityLogResponse)
async def get_invoice_activity(
    invoice_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    # History outlives the invoice itself, so a deleted id still answers
    entries = await ActivityLog(store).history(EntityType.INVOICE, invoice_id)
    return ActivityLogResponse(
        items=[ActivityLogEntryResponse.model_validate(e) for e in entries],
        count=len(entries),
    )
