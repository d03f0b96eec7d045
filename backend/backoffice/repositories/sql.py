"""BackOfficeStore over a SQLAlchemy AsyncSession."""

from uuid import UUID

from sqlalchemy import select, func, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.activity import ActivityLogEntry, EntityType
from backoffice.models.customer import Customer
from backoffice.models.invoice import Invoice, InvoiceLine, InvoiceStatus
from backoffice.models.mixins import utcnow
from backoffice.models.stock import StockItem
from backoffice.models.user import User


class SqlBackOfficeStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _page(self, query, offset: int, limit: int, order_by) -> tuple[list, int]:
        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.session.execute(count_query)).scalar_one()

        result = await self.session.execute(query.order_by(order_by).offset(offset).limit(limit))
        return list(result.scalars().all()), total

    # ── Stock ─────────────────────────────────────

    async def get_stock_item(self, product_id: UUID, *, for_update: bool = False) -> StockItem | None:
        # populate_existing: never trust a quantity cached in the identity map
        return await self.session.get(
            StockItem, product_id, populate_existing=True, with_for_update=for_update
        )

    async def list_stock_items(
        self, *, offset: int, limit: int, search: str | None = None, low_stock_only: bool = False
    ) -> tuple[list[StockItem], int]:
        query = select(StockItem)
        if search:
            query = query.where(
                or_(
                    StockItem.name.ilike(f"%{search}%"),
                    StockItem.brand.ilike(f"%{search}%"),
                    StockItem.dosage.ilike(f"%{search}%"),
                )
            )
        if low_stock_only:
            query = query.where(StockItem.is_low_stock.is_(True))
        return await self._page(query, offset, limit, StockItem.created_at.desc())

    async def add_stock_item(self, item: StockItem) -> StockItem:
        self.session.add(item)
        await self.session.flush()
        return item

    async def delete_stock_item(self, item: StockItem) -> None:
        await self.session.delete(item)
        await self.session.flush()

    async def decrement_if_at_least(self, product_id: UUID, amount: int) -> int | None:
        remaining = StockItem.quantity - amount
        stmt = (
            update(StockItem)
            .where(StockItem.id == product_id, StockItem.quantity >= amount)
            .values(
                quantity=remaining,
                is_low_stock=remaining < StockItem.low_stock_threshold,
                updated_at=utcnow(),
            )
            .returning(StockItem.quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def product_has_unsettled_invoice(self, product_id: UUID) -> bool:
        result = await self.session.execute(
            select(InvoiceLine.id)
            .join(Invoice, InvoiceLine.invoice_id == Invoice.id)
            .where(
                InvoiceLine.product_id == product_id,
                Invoice.status == InvoiceStatus.DUE,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    # ── Customers ─────────────────────────────────

    async def get_customer(self, customer_id: UUID) -> Customer | None:
        return await self.session.get(Customer, customer_id)

    async def find_customer_by_contacts(self, contacts: str) -> Customer | None:
        result = await self.session.execute(select(Customer).where(Customer.contacts == contacts))
        return result.scalar_one_or_none()

    async def list_customers(
        self, *, offset: int, limit: int, search: str | None = None
    ) -> tuple[list[Customer], int]:
        query = select(Customer)
        if search:
            query = query.where(Customer.name.ilike(f"%{search}%"))
        return await self._page(query, offset, limit, Customer.created_at.desc())

    async def add_customer(self, customer: Customer) -> Customer:
        self.session.add(customer)
        await self.session.flush()
        return customer

    async def delete_customer(self, customer: Customer) -> None:
        await self.session.delete(customer)
        await self.session.flush()

    # ── Invoices ──────────────────────────────────

    async def get_invoice(self, invoice_id: UUID, *, for_update: bool = False) -> Invoice | None:
        return await self.session.get(
            Invoice, invoice_id, populate_existing=for_update, with_for_update=for_update
        )

    async def list_invoices(
        self,
        *,
        offset: int,
        limit: int,
        status: InvoiceStatus | None = None,
        customer_id: UUID | None = None,
        search: str | None = None,
    ) -> tuple[list[Invoice], int]:
        query = select(Invoice)
        if status:
            query = query.where(Invoice.status == status)
        if customer_id:
            query = query.where(Invoice.customer_id == customer_id)
        if search:
            query = query.where(Invoice.sn.ilike(f"%{search}%"))
        return await self._page(query, offset, limit, Invoice.created_at.desc())

    async def add_invoice(self, invoice: Invoice) -> Invoice:
        self.session.add(invoice)
        await self.session.flush()
        return invoice

    async def delete_invoice(self, invoice: Invoice) -> None:
        await self.session.delete(invoice)
        await self.session.flush()

    # ── Users ─────────────────────────────────────

    async def get_user(self, user_id: UUID) -> User | None:
        return await self.session.get(User, user_id)

    async def find_user_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def list_users(self, *, offset: int, limit: int, search: str | None = None) -> tuple[list[User], int]:
        query = select(User)
        if search:
            query = query.where(or_(User.name.ilike(f"%{search}%"), User.username.ilike(f"%{search}%")))
        return await self._page(query, offset, limit, User.created_at.desc())

    # ── Activity log ──────────────────────────────

    async def add_activity(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_activity(self, entity_type: EntityType, entity_id: UUID) -> list[ActivityLogEntry]:
        result = await self.session.execute(
            select(ActivityLogEntry)
            .where(
                ActivityLogEntry.entity_type == entity_type,
                ActivityLogEntry.entity_id == entity_id,
            )
            .order_by(ActivityLogEntry.id)
        )
        return list(result.scalars().all())

    # ── Unit of work ──────────────────────────────

    async def flush(self) -> None:
        await self.session.flush()

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
