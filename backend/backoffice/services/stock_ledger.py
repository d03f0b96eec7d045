"""On-hand stock bookkeeping.

Two write paths exist:

* ``apply_delta`` -- locked read-modify-write with a floor at zero. Used for
  manual adjustments and returns, where clamping is acceptable.
* ``rebalance`` -- one pass in product id order: the store's conditional
  decrement for stock taken, ``apply_delta`` for stock returned. Sales use
  it so an underflow fails instead of being clamped.

Every mutation appends exactly one activity entry with before/after quantities.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from backoffice.models.activity import ActivityAction, EntityType
from backoffice.models.stock import StockItem
from backoffice.repositories.base import BackOfficeStore
from backoffice.schemas.auth import CurrentUser
from backoffice.services.activity_log import ActivityLog
from backoffice.services.errors import ConflictError, NotFoundError, Problem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Availability:
    available: bool
    on_hand: int
    item: StockItem


class StockLedger:
    def __init__(self, store: BackOfficeStore, activity: ActivityLog | None = None):
        self.store = store
        self.activity = activity or ActivityLog(store)

    async def get(self, product_id: UUID) -> StockItem:
        item = await self.store.get_stock_item(product_id)
        if item is None:
            raise NotFoundError(f"Product {product_id} not found in stock")
        return item

    async def check_availability(self, product_id: UUID, requested_qty: int) -> Availability:
        item = await self.get(product_id)
        return Availability(
            available=item.quantity >= requested_qty,
            on_hand=item.quantity,
            item=item,
        )

    async def check_all(self, quantities: dict[UUID, int]) -> tuple[dict[UUID, StockItem], list[Problem]]:
        """Check every product and collect all problems instead of stopping at the first."""
        items: dict[UUID, StockItem] = {}
        problems: list[Problem] = []
        for product_id, requested in quantities.items():
            try:
                availability = await self.check_availability(product_id, requested)
            except NotFoundError as exc:
                problems.append(Problem(product_id, exc.message, requested=requested))
                continue

            items[product_id] = availability.item
            if not availability.available:
                problems.append(
                    Problem(
                        product_id,
                        f'Insufficient stock for product "{availability.item.name}". '
                        f"Available quantity: {availability.on_hand}",
                        requested=requested,
                        on_hand=availability.on_hand,
                    )
                )
        return items, problems

    async def apply_delta(
        self,
        product_id: UUID,
        delta: int,
        identity: CurrentUser,
        action: ActivityAction = ActivityAction.STOCK_UPDATE,
        description: str | None = None,
    ) -> StockItem:
        """Add ``delta`` to on-hand, never going below zero."""
        item = await self.store.get_stock_item(product_id, for_update=True)
        if item is None:
            raise NotFoundError(f"Product {product_id} not found in stock")

        before = item.quantity
        item.quantity = max(0, before + delta)
        item.refresh_low_stock()
        await self.store.flush()

        if before + delta < 0:
            logger.warning(
                "Stock for %s clamped at zero: %s%+d requested by %s",
                product_id, before, delta, identity.id,
            )

        await self.activity.record(
            EntityType.STOCK_ITEM,
            item.id,
            identity,
            action,
            description or f"Quantity changed by {delta:+d}: {before} -> {item.quantity}",
            quantity_before=before,
            quantity_after=item.quantity,
        )
        return item

    async def _take(
        self, product_id: UUID, amount: int, identity: CurrentUser, reference: str, action: ActivityAction
    ) -> Problem | None:
        remaining = await self.store.decrement_if_at_least(product_id, amount)
        if remaining is None:
            return Problem(
                product_id,
                "Not enough stock left to reserve; it changed after validation",
                requested=amount,
            )

        await self.activity.record(
            EntityType.STOCK_ITEM,
            product_id,
            identity,
            action,
            f"{amount} unit(s) taken for invoice {reference}",
            quantity_before=remaining + amount,
            quantity_after=remaining,
        )
        return None

    async def _give_back(
        self, product_id: UUID, amount: int, identity: CurrentUser, reference: str, action: ActivityAction
    ) -> None:
        try:
            await self.apply_delta(
                product_id,
                amount,
                identity,
                action,
                f"{amount} unit(s) returned from invoice {reference}",
            )
        except NotFoundError:
            logger.warning(
                "Cannot return %d unit(s) of missing product %s from invoice %s",
                amount, product_id, reference,
            )

    async def rebalance(
        self,
        diffs: dict[UUID, int],
        identity: CurrentUser,
        reference: str,
        take_action: ActivityAction = ActivityAction.SALE,
        return_action: ActivityAction = ActivityAction.RETURN,
    ) -> None:
        """Apply signed per-product changes: positive takes stock, negative returns it.

        Every product is visited once, in id order, whichever way it moves, so
        concurrent writers always lock rows in the same sequence. Products
        that could not be taken are reported together in one ConflictError;
        anything already applied is left to the caller's rollback.
        """
        failed: list[Problem] = []
        for product_id in sorted(diffs):
            diff = diffs[product_id]
            if diff > 0:
                problem = await self._take(product_id, diff, identity, reference, take_action)
                if problem:
                    failed.append(problem)
            elif diff < 0:
                await self._give_back(product_id, -diff, identity, reference, return_action)

        if failed:
            logger.warning("Stock reservation for %s lost a race on %d product(s)", reference, len(failed))
            raise ConflictError("Stock was taken by a concurrent request", failed)

    async def reserve(
        self,
        quantities: dict[UUID, int],
        identity: CurrentUser,
        reference: str,
        action: ActivityAction = ActivityAction.SALE,
    ) -> None:
        """Take stock for every product or report which ones could not be taken."""
        await self.rebalance(quantities, identity, reference, take_action=action)

    async def release(
        self,
        quantities: dict[UUID, int],
        identity: CurrentUser,
        reference: str,
        action: ActivityAction = ActivityAction.RETURN,
    ) -> None:
        """Return stock for every product. Products deleted since invoicing are skipped."""
        await self.rebalance(
            {product_id: -amount for product_id, amount in quantities.items()},
            identity,
            reference,
            return_action=action,
        )
