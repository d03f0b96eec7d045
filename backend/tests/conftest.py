"""Shared fixtures: an in-memory BackOfficeStore with real rollback semantics."""

import asyncio
import uuid
from decimal import Decimal

import pytest

from backoffice.models.activity import ActivityLogEntry
from backoffice.models.customer import Customer
from backoffice.models.invoice import InvoiceStatus
from backoffice.models.mixins import utcnow
from backoffice.models.stock import StockItem
from backoffice.models.user import RoleType, User
from backoffice.schemas.auth import CurrentUser
from backoffice.services.invoice_workflow import InvoiceWorkflow


class InMemoryDatabase:
    """Committed state shared by every InMemoryStore opened on it."""

    def __init__(self):
        self.stock: dict[uuid.UUID, StockItem] = {}
        self.customers: dict[uuid.UUID, Customer] = {}
        self.invoices: dict = {}
        self.users: dict[uuid.UUID, User] = {}
        self.activity: list[ActivityLogEntry] = []
        self.next_activity_id = 1


class InMemoryStore:
    """One 'session' over an InMemoryDatabase.

    Writes apply immediately and are journaled; rollback() replays the
    journal backwards. ``fail_on`` names methods that raise RuntimeError,
    for exercising the unexpected-failure path.
    """

    def __init__(self, db: InMemoryDatabase, fail_on: set[str] | None = None):
        self.db = db
        self.fail_on = set(fail_on or ())
        self.commits = 0
        self.rollbacks = 0
        self._undo: list = []
        self._seen_refs: dict[uuid.UUID, list] = {}

    def _maybe_fail(self, name: str):
        if name in self.fail_on:
            raise RuntimeError(f"{name} exploded")

    @staticmethod
    def _stamp(obj):
        now = utcnow()
        if getattr(obj, "id", None) is None:
            obj.id = uuid.uuid4()
        obj.created_at = obj.created_at or now
        obj.updated_at = obj.updated_at or now

    @staticmethod
    def _page(items, offset, limit):
        items = sorted(items, key=lambda obj: obj.created_at, reverse=True)
        return items[offset:offset + limit], len(items)

    # ── Stock ─────────────────────────────────────

    async def get_stock_item(self, product_id, *, for_update=False):
        await asyncio.sleep(0)
        item = self.db.stock.get(product_id)
        if item is not None and for_update:
            before = (item.quantity, item.is_low_stock)

            def undo(item=item, before=before):
                item.quantity, item.is_low_stock = before

            self._undo.append(undo)
        return item

    async def list_stock_items(self, *, offset, limit, search=None, low_stock_only=False):
        items = list(self.db.stock.values())
        if search:
            needle = search.lower()
            items = [
                i for i in items
                if any(needle in (value or "").lower() for value in (i.name, i.brand, i.dosage))
            ]
        if low_stock_only:
            items = [i for i in items if i.is_low_stock]
        return self._page(items, offset, limit)

    async def add_stock_item(self, item):
        self._maybe_fail("add_stock_item")
        self._stamp(item)
        self.db.stock[item.id] = item
        self._undo.append(lambda: self.db.stock.pop(item.id, None))
        return item

    async def delete_stock_item(self, item):
        self.db.stock.pop(item.id, None)
        self._undo.append(lambda: self.db.stock.__setitem__(item.id, item))

    async def decrement_if_at_least(self, product_id, amount):
        await asyncio.sleep(0)
        self._maybe_fail("decrement_if_at_least")
        item = self.db.stock.get(product_id)
        if item is None or item.quantity < amount:
            return None
        item.quantity -= amount
        item.refresh_low_stock()

        def undo():
            item.quantity += amount
            item.refresh_low_stock()

        self._undo.append(undo)
        return item.quantity

    async def product_has_unsettled_invoice(self, product_id):
        return any(
            invoice.status == InvoiceStatus.DUE and product_id in invoice.quantities()
            for invoice in self.db.invoices.values()
        )

    # ── Customers ─────────────────────────────────

    async def get_customer(self, customer_id):
        await asyncio.sleep(0)
        customer = self.db.customers.get(customer_id)
        if customer is not None:
            self._seen_refs[customer.id] = list(customer.invoice_refs)
        return customer

    async def find_customer_by_contacts(self, contacts):
        return next((c for c in self.db.customers.values() if c.contacts == contacts), None)

    async def list_customers(self, *, offset, limit, search=None):
        items = list(self.db.customers.values())
        if search:
            items = [c for c in items if search.lower() in c.name.lower()]
        return self._page(items, offset, limit)

    async def add_customer(self, customer):
        self._stamp(customer)
        self.db.customers[customer.id] = customer
        self._undo.append(lambda: self.db.customers.pop(customer.id, None))
        return customer

    async def delete_customer(self, customer):
        self.db.customers.pop(customer.id, None)
        self._undo.append(lambda: self.db.customers.__setitem__(customer.id, customer))

    # ── Invoices ──────────────────────────────────

    async def get_invoice(self, invoice_id, *, for_update=False):
        await asyncio.sleep(0)
        invoice = self.db.invoices.get(invoice_id)
        if invoice is not None and for_update:
            before = (
                invoice.status, invoice.discount, invoice.total_amount,
                invoice.due_date, list(invoice.lines),
            )

            def undo(invoice=invoice, before=before):
                status, discount, total, due_date, lines = before
                invoice.status = status
                invoice.discount = discount
                invoice.total_amount = total
                invoice.due_date = due_date
                invoice.lines = lines

            self._undo.append(undo)
        return invoice

    async def list_invoices(self, *, offset, limit, status=None, customer_id=None, search=None):
        items = list(self.db.invoices.values())
        if status:
            items = [i for i in items if i.status == status]
        if customer_id:
            items = [i for i in items if i.customer_id == customer_id]
        if search:
            items = [i for i in items if search.lower() in i.sn.lower()]
        return self._page(items, offset, limit)

    async def add_invoice(self, invoice):
        self._maybe_fail("add_invoice")
        self._stamp(invoice)
        self.db.invoices[invoice.id] = invoice
        self._undo.append(lambda: self.db.invoices.pop(invoice.id, None))
        return invoice

    async def delete_invoice(self, invoice):
        self._maybe_fail("delete_invoice")
        self.db.invoices.pop(invoice.id, None)
        self._undo.append(lambda: self.db.invoices.__setitem__(invoice.id, invoice))

    # ── Users ─────────────────────────────────────

    async def get_user(self, user_id):
        await asyncio.sleep(0)
        user = self.db.users.get(user_id)
        if user is not None:
            before = (user.name, user.email, user.role)

            def undo(user=user, before=before):
                user.name, user.email, user.role = before

            self._undo.append(undo)
        return user

    async def find_user_by_email(self, email):
        return next((u for u in self.db.users.values() if u.email == email), None)

    async def list_users(self, *, offset, limit, search=None):
        items = list(self.db.users.values())
        if search:
            needle = search.lower()
            items = [u for u in items if needle in u.name.lower() or needle in u.username.lower()]
        return self._page(items, offset, limit)

    # ── Activity log ──────────────────────────────

    async def add_activity(self, entry):
        self._maybe_fail("add_activity")
        entry.id = self.db.next_activity_id
        self.db.next_activity_id += 1
        self.db.activity.append(entry)
        self._undo.append(lambda: self.db.activity.remove(entry))
        return entry

    async def list_activity(self, entity_type, entity_id):
        return sorted(
            (e for e in self.db.activity if e.entity_type == entity_type and e.entity_id == entity_id),
            key=lambda e: e.id,
        )

    # ── Unit of work ──────────────────────────────

    async def flush(self):
        # Back-reference lists are mutated in place; journal what changed since the last read
        for customer_id, seen in list(self._seen_refs.items()):
            customer = self.db.customers.get(customer_id)
            if customer is not None and list(customer.invoice_refs) != seen:
                def undo(customer=customer, seen=seen):
                    customer.invoice_refs = list(seen)

                self._undo.append(undo)
                self._seen_refs[customer_id] = list(customer.invoice_refs)
        self._maybe_fail("flush")

    async def commit(self):
        self._maybe_fail("commit")
        self._undo.clear()
        self._seen_refs.clear()
        self.commits += 1

    async def rollback(self):
        while self._undo:
            self._undo.pop()()
        self._seen_refs.clear()
        self.rollbacks += 1


# ── Fixtures ──────────────────────────────────────

@pytest.fixture
def db():
    return InMemoryDatabase()


@pytest.fixture
def store(db):
    return InMemoryStore(db)


@pytest.fixture
def workflow(store):
    return InvoiceWorkflow(store)


@pytest.fixture
def admin():
    return CurrentUser(id=uuid.uuid4(), name="Alice Admin", role=RoleType.ADMIN)


@pytest.fixture
def clerk():
    return CurrentUser(id=uuid.uuid4(), name="Carl Clerk", role=RoleType.USER)


@pytest.fixture
def make_stock(db):
    def _make(name="Paracetamol", quantity=10, price="10.00", threshold=10):
        now = utcnow()
        item = StockItem(
            id=uuid.uuid4(),
            name=name,
            quantity=quantity,
            price=Decimal(price),
            low_stock_threshold=threshold,
            created_at=now,
            updated_at=now,
        )
        item.refresh_low_stock()
        db.stock[item.id] = item
        return item

    return _make


@pytest.fixture
def make_customer(db):
    def _make(name="Jane Doe", contacts=None):
        now = utcnow()
        customer = Customer(
            id=uuid.uuid4(),
            name=name,
            contacts=contacts or f"+1-555-{uuid.uuid4().hex[:6]}",
            address="1 Main Street",
            created_at=now,
            updated_at=now,
        )
        db.customers[customer.id] = customer
        return customer

    return _make


@pytest.fixture
def make_user(db):
    def _make(username="jdoe", name="John Doe", role=RoleType.USER, user_id=None):
        now = utcnow()
        user = User(
            id=user_id or uuid.uuid4(),
            username=username,
            name=name,
            email=f"{username}@example.com",
            role=role,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        db.users[user.id] = user
        return user

    return _make
