"""Stock item endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from backoffice.core.deps import get_current_user, get_store, get_workflow, require_role
from backoffice.models.activity import ActivityAction, EntityType
from backoffice.models.stock import StockItem
from backoffice.repositories.base import BackOfficeStore
from backoffice.schemas.activity import ActivityLogEntryResponse, ActivityLogResponse
from backoffice.schemas.auth import CurrentUser
from backoffice.schemas.stock import (
    StockAdjustment,
    StockItemCreate,
    StockItemListResponse,
    StockItemResponse,
    StockItemUpdate,
)
from backoffice.services.activity_log import ActivityLog
from backoffice.services.invoice_workflow import InvoiceWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stock", tags=["stock"])


async def _get_or_404(store: BackOfficeStore, product_id: UUID) -> StockItem:
    item = await store.get_stock_item(product_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    return item


@router.get("", response_model=StockItemListResponse)
async def list_stock(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    search: str | None = None,
    low_stock_only: bool = False,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    """List stock items, newest first, with optional name/brand/dosage search."""
    items, total = await store.list_stock_items(
        offset=(page - 1) * size,
        limit=size,
        search=search,
        low_stock_only=low_stock_only,
    )
    return StockItemListResponse(
        items=[StockItemResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        size=size,
    )


@router.get("/{product_id}", response_model=StockItemResponse)
async def get_stock_item(
    product_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    item = await _get_or_404(store, product_id)
    return StockItemResponse.model_validate(item)


@router.post("", response_model=StockItemResponse, status_code=status.HTTP_201_CREATED)
async def create_stock_item(
    body: StockItemCreate,
    current_user: CurrentUser = Depends(require_role("admin")),
    store: BackOfficeStore = Depends(get_store),
):
    """Create a stock item (admin only)."""
    item = StockItem(**body.model_dump())
    item.refresh_low_stock()
    await store.add_stock_item(item)
    await ActivityLog(store).record(
        EntityType.STOCK_ITEM,
        item.id,
        current_user,
        ActivityAction.CREATE,
        f"Product {item.name} created with {item.quantity} unit(s)",
        quantity_before=0,
        quantity_after=item.quantity,
    )
    await store.commit()

    logger.info("Stock item %s created by %s", item.id, current_user.id)
    return StockItemResponse.model_validate(item)


@router.patch("/{product_id}", response_model=StockItemResponse)
async def update_stock_item(
    product_id: UUID,
    body: StockItemUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    """Edit catalogue fields. On-hand quantity is changed through /adjust only."""
    item = await _get_or_404(store, product_id)

    changes = []
    for field, value in body.model_dump(exclude_unset=True).items():
        if getattr(item, field) != value:
            changes.append(f"{field} {getattr(item, field)} -> {value}")
            setattr(item, field, value)
    item.refresh_low_stock()

    if changes:
        await ActivityLog(store).record(
            EntityType.STOCK_ITEM,
            item.id,
            current_user,
            ActivityAction.UPDATE,
            "; ".join(changes),
        )
    await store.commit()
    return StockItemResponse.model_validate(item)


@router.post("/{product_id}/adjust", response_model=StockItemResponse)
async def adjust_stock(
    product_id: UUID,
    adjustment: StockAdjustment,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: InvoiceWorkflow = Depends(get_workflow),
):
    """Record sold and/or returned units. On-hand never drops below zero."""
    item = await workflow.adjust_stock(product_id, adjustment.delta, current_user, adjustment.note)
    return StockItemResponse.model_validate(item)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_stock_item(
    product_id: UUID,
    current_user: CurrentUser = Depends(require_role("admin")),
    store: BackOfficeStore = Depends(get_store),
):
    """Delete a stock item (admin only). Refused while a due invoice still lists it."""
    item = await _get_or_404(store, product_id)

    if await store.product_has_unsettled_invoice(product_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Product is referenced by a due invoice",
        )

    await store.delete_stock_item(item)
    await store.commit()
    logger.info("Stock item %s deleted by %s", product_id, current_user.id)


@router.get("/{product_id}/activity", response_model=ActivityLogResponse)
async def get_stock_activity(
    product_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    store: BackOfficeStore = Depends(get_store),
):
    await _get_or_404(store, product_id)
    entries = await ActivityLog(store).history(EntityType.STOCK_ITEM, product_id)
    return ActivityLogResponse(
        items=[ActivityLogEntryResponse.model_validate(e) for e in entries],
        count=len(entries),
    )
