from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from apps.api.services.errors import ConcurrencyConflictError, NotFoundError, ValidationFailedError
from apps.api.services.sequence import SequentialCodeGenerator
from apps.api.services.tickets import (
    SenderRole,
    SupportMessage,
    SupportTicket,
    TicketAggregate,
    TicketCategory,
    TicketOwnerRole,
    TicketPriority,
    TicketService,
    TicketStatus,
    normalize_attachments,
)

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class DummyRepository:
    def __init__(self):
        self.create_ticket = AsyncMock()
        self.add_message = AsyncMock()
        self.get_by_number = AsyncMock(return_value=None)
        self.get_ticket = AsyncMock(return_value=None)
        self.list_tickets = AsyncMock()
        self.compare_and_set_status = AsyncMock(return_value=True)
        self.update_ticket = AsyncMock(return_value=None)


def _ticket(*, status: TicketStatus = TicketStatus.OPEN, owner_id: str | None = "customer-1") -> SupportTicket:
    return SupportTicket(
        id="ticket-1",
        ticket_number="SUP-2024-000001",
        owner_id=owner_id,
        owner_role=TicketOwnerRole.CUSTOMER,
        name="Ayşe",
        email="ayse@example.com",
        phone="",
        subject="Refund",
        message="Where is my refund?",
        category=TicketCategory.PAYMENTS,
        status=status,
        priority=TicketPriority.MEDIUM,
        created_at=NOW,
        updated_at=NOW,
    )


def _aggregate(ticket: SupportTicket, *message_times: datetime) -> TicketAggregate:
    messages = [
        SupportMessage(
            id=f"message-{index}",
            ticket_id=ticket.id,
            sender_role=SenderRole.USER,
            sender_id=ticket.owner_id,
            body="hello",
            created_at=moment,
        )
        for index, moment in enumerate(message_times)
    ]
    return TicketAggregate(ticket=ticket, messages=messages)


@pytest.fixture
def repository() -> DummyRepository:
    return DummyRepository()


@pytest.fixture
def service(repository, counter_store, clock) -> TicketService:
    return TicketService(
        repository,  # type: ignore[arg-type]
        code_generator=SequentialCodeGenerator(counter_store, clock=clock),
        clock=clock,
    )


@pytest.mark.asyncio
async def test_create_ticket_opens_thread_with_first_message(service, repository):
    aggregate = await service.create_ticket(
        name=" Ayşe ",
        email="AYSE@Example.com",
        subject="Refund",
        message="<script>alert(1)</script>Where is my refund?",
        category="billing",
        attachments=[{"url": "https://cdn.example.com/receipt.pdf", "file_name": "receipt.pdf"}, {"file_name": "x"}],
        owner_id="customer-1",
        owner_role=TicketOwnerRole.CUSTOMER,
    )

    ticket = aggregate.ticket
    assert ticket.ticket_number == "SUP-2024-000001"
    assert ticket.status is TicketStatus.OPEN
    assert ticket.priority is TicketPriority.MEDIUM
    assert ticket.category is TicketCategory.OTHER
    assert ticket.email == "ayse@example.com"
    assert ticket.name == "Ayşe"
    assert ticket.message == "Where is my refund?"
    assert [item.url for item in ticket.attachments] == ["https://cdn.example.com/receipt.pdf"]
    assert len(aggregate.messages) == 1
    assert aggregate.messages[0].sender_role is SenderRole.USER
    assert aggregate.transitions[0].from_status is None
    assert aggregate.transitions[0].to_status is TicketStatus.OPEN
    repository.create_ticket.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_ticket_requires_contact_and_message(service, repository):
    with pytest.raises(ValidationFailedError):
        await service.create_ticket(name="", email="a@example.com", subject="Hi", message="Body")
    repository.create_ticket.assert_not_awaited()


def test_normalize_attachments_caps_the_list():
    items = [{"url": f"https://cdn.example.com/{index}.png"} for index in range(8)]
    assert len(normalize_attachments(items)) == 5
    assert normalize_attachments("not-a-list") == []


@pytest.mark.asyncio
async def test_get_ticket_upper_cases_number_and_checks_owner(service, repository):
    repository.get_by_number.return_value = _aggregate(_ticket(owner_id="customer-1"), NOW)

    aggregate = await service.get_ticket(" sup-2024-000001 ", owner_id="customer-1")
    assert aggregate.ticket.ticket_number == "SUP-2024-000001"
    repository.get_by_number.assert_awaited_with("SUP-2024-000001")

    with pytest.raises(NotFoundError):
        await service.get_ticket("SUP-2024-000001", owner_id="customer-2")


@pytest.mark.asyncio
async def test_operator_reply_moves_open_ticket_to_in_progress(service, repository):
    repository.get_by_number.return_value = _aggregate(_ticket(status=TicketStatus.OPEN), NOW)

    aggregate = await service.reply_as_operator("SUP-2024-000001", operator_id="admin-1", body="Looking into it")

    assert aggregate.ticket.status is TicketStatus.IN_PROGRESS
    assert [(item.from_status, item.to_status) for item in aggregate.transitions] == [
        (TicketStatus.OPEN, TicketStatus.IN_PROGRESS)
    ]
    assert aggregate.messages[-1].sender_role is SenderRole.ADMIN
    repository.compare_and_set_status.assert_awaited_once()
    kwargs = repository.compare_and_set_status.await_args.kwargs
    assert kwargs["expected"] is TicketStatus.OPEN
    assert kwargs["status"] is TicketStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_reply_timestamp_never_precedes_previous_message(repository, counter_store):
    frozen = NOW
    service = TicketService(
        repository,  # type: ignore[arg-type]
        code_generator=SequentialCodeGenerator(counter_store),
        clock=lambda: frozen,
    )
    later = NOW + timedelta(seconds=5)
    repository.get_by_number.return_value = _aggregate(_ticket(status=TicketStatus.IN_PROGRESS), NOW, later)

    aggregate = await service.reply_as_owner("SUP-2024-000001", owner_id="customer-1", body="Any news?")

    assert aggregate.messages[-1].created_at == later + timedelta(microseconds=1)
    repository.compare_and_set_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_lost_status_race_is_rederived_from_fresh_state(service, repository):
    repository.get_by_number.return_value = _aggregate(_ticket(status=TicketStatus.OPEN), NOW)
    repository.compare_and_set_status.return_value = False
    repository.get_ticket.return_value = _ticket(status=TicketStatus.IN_PROGRESS)

    aggregate = await service.reply_as_operator("SUP-2024-000001", operator_id="admin-1", body="On it")

    assert aggregate.ticket.status is TicketStatus.IN_PROGRESS
    assert aggregate.transitions == []
    repository.get_ticket.assert_awaited_once_with("ticket-1")


@pytest.mark.asyncio
async def test_repeated_status_race_surfaces_conflict(service, repository):
    repository.get_by_number.return_value = _aggregate(_ticket(status=TicketStatus.OPEN), NOW)
    repository.compare_and_set_status.return_value = False
    repository.get_ticket.return_value = _ticket(status=TicketStatus.OPEN)

    with pytest.raises(ConcurrencyConflictError):
        await service.reply_as_operator("SUP-2024-000001", operator_id="admin-1", body="On it")

    assert repository.compare_and_set_status.await_count == 2


@pytest.mark.asyncio
async def test_reply_requires_a_body(service, repository):
    repository.get_by_number.return_value = _aggregate(_ticket(), NOW)

    with pytest.raises(ValidationFailedError):
        await service.reply_as_owner("SUP-2024-000001", owner_id="customer-1", body="   ")
    repository.add_message.assert_not_awaited()
