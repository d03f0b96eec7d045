"""Routes and workflow over SqlBackOfficeStore on a real (SQLite) async session.

These catch what the in-memory store cannot: lazy loads outside the
greenlet, NOT NULL and unique constraints, and the conditional decrement.
"""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from backoffice.api.customers import create_customer, update_customer
from backoffice.api.users import edit_user_role, list_users
from backoffice.db.base import Base
from backoffice.models.activity import ActivityAction, EntityType
from backoffice.models.customer import Customer
from backoffice.models.stock import StockItem
from backoffice.models.user import RoleType, User
from backoffice.repositories.sql import SqlBackOfficeStore
from backoffice.schemas.customer import CustomerCreate, CustomerUpdate
from backoffice.schemas.invoice import InvoiceCreate, InvoicePatch, LineItemIn
from backoffice.schemas.user import UserRoleUpdate
from backoffice.services.invoice_workflow import InvoiceWorkflow


@pytest_asyncio.fixture
async def session():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_sessionmaker(engine, expire_on_commit=False)() as db_session:
        yield db_session

    await engine.dispose()


@pytest.fixture
def sql_store(session):
    return SqlBackOfficeStore(session)


async def add_stock(session, name, quantity, price="10.00"):
    item = StockItem(name=name, quantity=quantity, price=Decimal(price), low_stock_threshold=2)
    item.refresh_low_stock()
    session.add(item)
    await session.commit()
    return item.id


async def add_user(session, identity):
    user = User(
        id=identity.id,
        username=identity.name.split()[0].lower(),
        name=identity.name,
        email=f"{identity.id.hex[:8]}@example.com",
        role=identity.role,
    )
    session.add(user)
    await session.commit()
    return user


# ── Customers ─────────────────────────────────────

@pytest.mark.asyncio
async def test_create_customer_serializes_without_lazy_load(sql_store, clerk):
    result = await create_customer(
        body=CustomerCreate(name="Jane Doe", contacts="+1-555-0100", address="1 Main Street"),
        current_user=clerk,
        store=sql_store,
    )

    assert result.invoice_ids == []
    [entry] = await sql_store.list_activity(EntityType.CUSTOMER, result.id)
    assert entry.action == ActivityAction.CREATE


@pytest.mark.asyncio
async def test_duplicate_contacts_race_maps_to_409(sql_store, clerk):
    body = CustomerCreate(name="Jane Doe", contacts="+1-555-0100", address="1 Main Street")
    await create_customer(body=body, current_user=clerk, store=sql_store)

    # Simulate a concurrent insert that passed the pre-check
    sql_store.find_customer_by_contacts = AsyncMock(return_value=None)

    with pytest.raises(HTTPException) as exc_info:
        await create_customer(
            body=CustomerCreate(name="John Doe", contacts="+1-555-0100", address="2 Side Road"),
            current_user=clerk,
            store=sql_store,
        )

    assert exc_info.value.status_code == 409
    items, total = await sql_store.list_customers(offset=0, limit=10)
    assert total == 1
    assert items[0].name == "Jane Doe"


@pytest.mark.asyncio
async def test_update_contacts_race_maps_to_409(sql_store, clerk):
    await create_customer(
        body=CustomerCreate(name="Jane Doe", contacts="+1-555-0100", address="1 Main Street"),
        current_user=clerk,
        store=sql_store,
    )
    second = await create_customer(
        body=CustomerCreate(name="John Doe", contacts="+1-555-0101", address="2 Side Road"),
        current_user=clerk,
        store=sql_store,
    )
    sql_store.find_customer_by_contacts = AsyncMock(return_value=None)

    with pytest.raises(HTTPException) as exc_info:
        await update_customer(
            customer_id=second.id,
            body=CustomerUpdate(contacts="+1-555-0100"),
            current_user=clerk,
            store=sql_store,
        )

    assert exc_info.value.status_code == 409
    history = await sql_store.list_activity(EntityType.CUSTOMER, second.id)
    assert [entry.action for entry in history] == [ActivityAction.CREATE]


# ── Invoices ──────────────────────────────────────

@pytest.mark.asyncio
async def test_invoice_lifecycle_on_sql(session, sql_store, admin):
    await add_user(session, admin)
    first_id = await add_stock(session, "Paracetamol", 10)
    second_id = await add_stock(session, "Ibuprofen", 10, price="5.00")
    customer = Customer(name="Jane Doe", address="1 Main Street", invoice_refs=[])
    session.add(customer)
    await session.commit()
    workflow = InvoiceWorkflow(sql_store)

    invoice = await workflow.create_invoice(
        InvoiceCreate(customer_id=customer.id, lines=[LineItemIn(product_id=first_id, quantity=3)]),
        admin,
    )
    assert (await sql_store.get_stock_item(first_id)).quantity == 7
    assert (await sql_store.get_customer(customer.id)).invoice_ids == [invoice.id]

    await workflow.update_invoice(
        invoice.id, InvoicePatch(lines=[LineItemIn(product_id=second_id, quantity=4)]), admin
    )
    assert (await sql_store.get_stock_item(first_id)).quantity == 10
    assert (await sql_store.get_stock_item(second_id)).quantity == 6

    await workflow.delete_invoice(invoice.id, admin)
    assert (await sql_store.get_stock_item(second_id)).quantity == 10
    assert (await sql_store.get_customer(customer.id)).invoice_ids == []
    assert await sql_store.get_invoice(invoice.id) is None


@pytest.mark.asyncio
async def test_conditional_decrement_refuses_underflow(session, sql_store):
    product_id = await add_stock(session, "Scarce", 2)

    assert await sql_store.decrement_if_at_least(product_id, 3) is None
    assert await sql_store.decrement_if_at_least(product_id, 2) == 0
    assert (await sql_store.get_stock_item(product_id)).is_low_stock is True


@pytest.mark.asyncio
async def test_invoice_search_by_serial_number(session, sql_store, admin):
    await add_user(session, admin)
    product_id = await add_stock(session, "Paracetamol", 10)
    customer = Customer(name="Jane Doe", address="1 Main Street", invoice_refs=[])
    session.add(customer)
    await session.commit()
    workflow = InvoiceWorkflow(sql_store)
    for sn in ("INV-A-1", "INV-A-2", "INV-B-1"):
        await workflow.create_invoice(
            InvoiceCreate(
                sn=sn, customer_id=customer.id, lines=[LineItemIn(product_id=product_id, quantity=1)]
            ),
            admin,
        )

    items, total = await sql_store.list_invoices(offset=0, limit=10, search="inv-a")

    assert total == 2
    assert {invoice.sn for invoice in items} == {"INV-A-1", "INV-A-2"}


# ── Users ─────────────────────────────────────────

@pytest.mark.asyncio
async def test_role_change_on_sql(session, sql_store, admin, clerk):
    await add_user(session, admin)
    await add_user(session, clerk)

    result = await edit_user_role(
        user_id=clerk.id, body=UserRoleUpdate(role="admin"), current_user=admin, store=sql_store
    )

    assert result.role == RoleType.ADMIN
    [entry] = await sql_store.list_activity(EntityType.USER, clerk.id)
    assert entry.action == ActivityAction.ROLE_CHANGE

    listing = await list_users(page=1, size=10, search="carl", current_user=admin, store=sql_store)
    assert listing.total == 1
    assert listing.items[0].role == RoleType.ADMIN


@pytest.mark.asyncio
async def test_unknown_user_is_404_on_sql(sql_store, admin):
    with pytest.raises(HTTPException) as exc_info:
        await edit_user_role(
            user_id=uuid.uuid4(), body=UserRoleUpdate(role="admin"), current_user=admin, store=sql_store
        )
    assert exc_info.value.status_code == 404
