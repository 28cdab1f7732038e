from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from apps.api.services.pagination import PageRequest
from apps.api.services.sequence import SequentialCodeGenerator, SqlCounterStore
from apps.api.services.tickets import (
    SenderRole,
    TicketOwnerRole,
    TicketPriority,
    TicketRepository,
    TicketService,
    TicketStatus,
)
from packages.db.models import SequenceCounterTable


@pytest.fixture
def ticket_service(session_factory, engine, clock) -> TicketService:
    return TicketService(
        TicketRepository(session_factory, engine=engine),
        code_generator=SequentialCodeGenerator(SqlCounterStore(session_factory, engine=engine), clock=clock),
        clock=clock,
    )


@pytest.mark.asyncio
async def test_ensure_schema_creates_ticket_tables(engine: AsyncEngine):
    repository = TicketRepository(async_sessionmaker(engine, expire_on_commit=False), engine=engine)

    await repository.ensure_schema()

    async with engine.begin() as conn:
        tables = await conn.run_sync(lambda sync_conn: set(sa_inspect(sync_conn).get_table_names()))
    assert {"support_tickets", "support_messages", "sequence_counters"} <= tables


@pytest.mark.asyncio
async def test_ticket_lifecycle_end_to_end(session_factory, ticket_service: TicketService):
    async with session_factory() as session:
        session.add(
            SequenceCounterTable(
                name="support_ticket_seq",
                seq=41,
                updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
        )
        await session.commit()

    created = await ticket_service.create_ticket(
        name="Budi",
        email="budi@example.com",
        subject="Order not delivered",
        message="My order has not arrived.",
        category="orders",
        owner_id="customer-1",
        owner_role=TicketOwnerRole.CUSTOMER,
    )
    number = created.ticket.ticket_number
    assert number == "SUP-2024-000042"
    assert created.ticket.status is TicketStatus.OPEN

    after_operator = await ticket_service.reply_as_operator(number, operator_id="admin-1", body="Checking with the courier")
    assert after_operator.ticket.status is TicketStatus.IN_PROGRESS
    assert after_operator.transitions[0].from_status is TicketStatus.OPEN

    after_user = await ticket_service.reply_as_owner(number, owner_id="customer-1", body="Thanks")
    assert after_user.ticket.status is TicketStatus.IN_PROGRESS
    assert after_user.transitions == []

    resolved = await ticket_service.change_status(number, new_status="RESOLVED", actor="admin")
    assert resolved.ticket.status is TicketStatus.RESOLVED
    assert resolved.transitions[0].reason == "manual"

    reopened = await ticket_service.reply_as_owner(number, owner_id="customer-1", body="Still missing one item")
    assert reopened.ticket.status is TicketStatus.IN_PROGRESS
    assert reopened.transitions[0].from_status is TicketStatus.RESOLVED

    stored = await ticket_service.get_ticket(number.lower())
    assert stored.ticket.status is TicketStatus.IN_PROGRESS
    assert [message.sender_role for message in stored.messages] == [
        SenderRole.USER,
        SenderRole.ADMIN,
        SenderRole.USER,
        SenderRole.USER,
    ]
    timestamps = [message.created_at for message in stored.messages]
    assert timestamps == sorted(timestamps)
    assert len(set(timestamps)) == len(timestamps)


@pytest.mark.asyncio
async def test_messages_with_identical_clock_readings_stay_ordered(session_factory, engine):
    frozen = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
    service = TicketService(
        TicketRepository(session_factory, engine=engine),
        code_generator=SequentialCodeGenerator(SqlCounterStore(session_factory, engine=engine), clock=lambda: frozen),
        clock=lambda: frozen,
    )
    created = await service.create_ticket(
        name="Guest", email="guest@example.com", subject="Question", message="First"
    )
    number = created.ticket.ticket_number

    await service.reply_as_operator(number, operator_id="admin-1", body="Second")
    await service.reply_as_operator(number, operator_id="admin-1", body="Third")

    stored = await service.get_ticket(number)
    assert [message.body for message in stored.messages] == ["First", "Second", "Third"]
    assert stored.messages[0].created_at < stored.messages[1].created_at < stored.messages[2].created_at


@pytest.mark.asyncio
async def test_compare_and_set_status_only_matches_expected(session_factory, ticket_service: TicketService):
    created = await ticket_service.create_ticket(
        name="Guest", email="guest@example.com", subject="Question", message="Hello"
    )
    repository = TicketRepository(session_factory)
    now = datetime(2024, 3, 2, tzinfo=timezone.utc)

    assert not await repository.compare_and_set_status(
        created.ticket.id, expected=TicketStatus.RESOLVED, status=TicketStatus.CLOSED, updated_at=now
    )
    assert await repository.compare_and_set_status(
        created.ticket.id, expected=TicketStatus.OPEN, status=TicketStatus.CLOSED, updated_at=now
    )
    stored = await repository.get_ticket(created.ticket.id)
    assert stored is not None and stored.status is TicketStatus.CLOSED


@pytest.mark.asyncio
async def test_listings_filter_by_owner_and_status(ticket_service: TicketService):
    first = await ticket_service.create_ticket(
        name="Vendor", email="v@example.com", subject="Payout", message="Late payout",
        category="PAYMENTS", owner_id="vendor-1", owner_role=TicketOwnerRole.VENDOR,
    )
    await ticket_service.create_ticket(
        name="Guest", email="g@example.com", subject="Account", message="Cannot log in", category="ACCOUNT"
    )
    await ticket_service.change_priority(first.ticket.ticket_number, priority="high", actor="admin")

    owned = await ticket_service.list_owner_tickets("vendor-1", page=PageRequest())
    assert [ticket.ticket_number for ticket in owned.items] == [first.ticket.ticket_number]
    assert owned.items[0].priority is TicketPriority.HIGH

    open_tickets = await ticket_service.list_tickets(page=PageRequest(), status=TicketStatus.OPEN)
    assert open_tickets.total == 2

    searched = await ticket_service.list_tickets(page=PageRequest(), query="log in")
    assert searched.total == 1
    assert searched.items[0].owner_role is TicketOwnerRole.GUEST

    paged = await ticket_service.list_tickets(page=PageRequest(page=2, limit=1))
    assert paged.pages == 2
    assert len(paged.items) == 1
