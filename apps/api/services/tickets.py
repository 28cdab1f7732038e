from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Mapping, Sequence

from sqlalchemy import func, or_, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, select

from apps.api.core.clock import Clock, utcnow
from packages.db.dialects import ensure_aware
from packages.db.models import SupportMessageTable, SupportTicketTable

from .errors import ConcurrencyConflictError, InvalidTransitionError, NotFoundError, ValidationFailedError
from .pagination import Page, PageRequest
from .sanitize import coerce_choice, sanitize_rich_text, sanitize_text
from .sequence import SequentialCodeGenerator

logger = logging.getLogger(__name__)

DEFAULT_COUNTER_NAME = "support_ticket_seq"
MAX_ATTACHMENTS = 5


class TicketStatus(str, Enum):
    """Canonical states of the support ticket lifecycle."""

    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class TicketPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class TicketCategory(str, Enum):
    TECHNICAL = "TECHNICAL"
    ACCOUNT = "ACCOUNT"
    ORDERS = "ORDERS"
    PAYMENTS = "PAYMENTS"
    VENDOR = "VENDOR"
    OTHER = "OTHER"


class TicketOwnerRole(str, Enum):
    GUEST = "GUEST"
    CUSTOMER = "CUSTOMER"
    VENDOR = "VENDOR"


class SenderRole(str, Enum):
    """Author side of a thread message: the ticket owner or an operator."""

    USER = "USER"
    ADMIN = "ADMIN"


def owner_role_for(account_role: str | None) -> TicketOwnerRole:
    if account_role is None or account_role == "guest":
        return TicketOwnerRole.GUEST
    if account_role == "vendor":
        return TicketOwnerRole.VENDOR
    return TicketOwnerRole.CUSTOMER


def parse_status(value: TicketStatus | str) -> TicketStatus:
    try:
        return TicketStatus(value.value if isinstance(value, TicketStatus) else str(value).strip().upper())
    except ValueError as exc:
        raise InvalidTransitionError(f"Invalid status: {value!r}") from exc


def parse_priority(value: TicketPriority | str) -> TicketPriority:
    try:
        return TicketPriority(value.value if isinstance(value, TicketPriority) else str(value).strip().upper())
    except ValueError as exc:
        raise InvalidTransitionError(f"Invalid priority: {value!r}") from exc


def normalize_ticket_number(value: str) -> str:
    return str(value or "").strip().upper()


@dataclass(slots=True, frozen=True)
class Attachment:
    url: str
    file_name: str = ""
    mime_type: str = ""
    size: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {"url": self.url, "file_name": self.file_name, "mime_type": self.mime_type, "size": self.size}


def normalize_attachments(items: Any, *, limit: int = MAX_ATTACHMENTS) -> list[Attachment]:
    """Keep attachments that carry a URL, capped at ``limit``."""

    if not isinstance(items, (list, tuple)):
        return []
    attachments: list[Attachment] = []
    for item in items:
        data = item.as_dict() if isinstance(item, Attachment) else item
        if not isinstance(data, Mapping):
            continue
        url = sanitize_text(data.get("url"))
        if not url:
            continue
        try:
            size = max(0, int(data.get("size") or 0))
        except (TypeError, ValueError):
            size = 0
        attachments.append(
            Attachment(
                url=url,
                file_name=sanitize_text(data.get("file_name")),
                mime_type=sanitize_text(data.get("mime_type")),
                size=size,
            )
        )
    return attachments[:limit]


@dataclass(slots=True)
class SupportTicket:
    """Primary ticket record."""

    id: str
    ticket_number: str
    owner_id: str | None
    owner_role: TicketOwnerRole
    name: str
    email: str
    phone: str
    subject: str
    message: str
    category: TicketCategory
    status: TicketStatus
    priority: TicketPriority
    created_at: datetime
    updated_at: datetime
    attachments: Sequence[Attachment] = field(default_factory=list)


@dataclass(slots=True)
class SupportMessage:
    """Individual message belonging to a ticket thread."""

    id: str
    ticket_id: str
    sender_role: SenderRole
    sender_id: str | None
    body: str
    created_at: datetime
    attachments: Sequence[Attachment] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class TicketTransition:
    """Fact describing a status change, handed to the caller for notification."""

    ticket_number: str
    from_status: TicketStatus | None
    to_status: TicketStatus
    actor: str | None
    reason: str


@dataclass(slots=True)
class TicketAggregate:
    """Container bundling the ticket with its thread and the transitions just applied."""

    ticket: SupportTicket
    messages: Sequence[SupportMessage]
    transitions: Sequence[TicketTransition] = field(default_factory=list)


class TicketStateMachine:
    """Ticket status policy.

    Explicit administrative moves are unconstrained. Thread activity adds
    automatic moves: an operator reply on an ``OPEN`` ticket starts work, and an
    owner reply on a ``RESOLVED`` or ``CLOSED`` ticket reopens it.
    """

    _AUTOMATIC: Mapping[SenderRole, Mapping[TicketStatus, TicketStatus]] = {
        SenderRole.ADMIN: {TicketStatus.OPEN: TicketStatus.IN_PROGRESS},
        SenderRole.USER: {
            TicketStatus.RESOLVED: TicketStatus.IN_PROGRESS,
            TicketStatus.CLOSED: TicketStatus.IN_PROGRESS,
        },
    }

    def initial_state(self) -> TicketStatus:
        return TicketStatus.OPEN

    def can_transition(self, current: TicketStatus, target: TicketStatus) -> bool:
        return isinstance(current, TicketStatus) and isinstance(target, TicketStatus)

    def assert_transition(self, current: TicketStatus, target: TicketStatus) -> None:
        if not self.can_transition(current, target):
            raise InvalidTransitionError(f"Invalid status transition: {current!s} -> {target!s}")

    def on_reply(self, current: TicketStatus, sender: SenderRole) -> TicketStatus:
        return self._AUTOMATIC.get(sender, {}).get(current, current)


class TicketRepository:
    """Persistence helper wrapping ``support_tickets`` and ``support_messages``."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        async with self._engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)

    async def create_ticket(self, ticket: SupportTicket, message: SupportMessage) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    SupportTicketTable(
                        id=ticket.id,
                        ticket_number=ticket.ticket_number,
                        owner_id=ticket.owner_id,
                        owner_role=ticket.owner_role.value,
                        name=ticket.name,
                        email=ticket.email,
                        phone=ticket.phone,
                        subject=ticket.subject,
                        message=ticket.message,
                        category=ticket.category.value,
                        status=ticket.status.value,
                        priority=ticket.priority.value,
                        attachments=[item.as_dict() for item in ticket.attachments],
                        created_at=ticket.created_at,
                        updated_at=ticket.updated_at,
                    )
                )
                session.add(self._message_to_table(message))

    async def add_message(self, message: SupportMessage) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(self._message_to_table(message))

    async def get_ticket(self, ticket_id: str) -> SupportTicket | None:
        async with self._session_factory() as session:
            row = await session.get(SupportTicketTable, ticket_id)
            return None if row is None else self._table_to_ticket(row)

    async def get_by_number(self, ticket_number: str) -> TicketAggregate | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SupportTicketTable).where(SupportTicketTable.ticket_number == ticket_number)
            )
            ticket_row = result.scalars().first()
            if ticket_row is None:
                return None
            message_result = await session.execute(
                select(SupportMessageTable)
                .where(SupportMessageTable.ticket_id == ticket_row.id)
                .order_by(SupportMessageTable.created_at.asc(), SupportMessageTable.id.asc())
            )
            ticket = self._table_to_ticket(ticket_row)
            messages = [self._table_to_message(row) for row in message_result.scalars().all()]
        return TicketAggregate(ticket=ticket, messages=messages)

    async def list_tickets(
        self,
        *,
        page: PageRequest,
        owner_id: str | None = None,
        status: TicketStatus | None = None,
        category: TicketCategory | None = None,
        priority: TicketPriority | None = None,
        query: str | None = None,
    ) -> Page[SupportTicket]:
        conditions: list[Any] = []
        if owner_id is not None:
            conditions.append(SupportTicketTable.owner_id == owner_id)
        if status is not None:
            conditions.append(SupportTicketTable.status == status.value)
        if category is not None:
            conditions.append(SupportTicketTable.category == category.value)
        if priority is not None:
            conditions.append(SupportTicketTable.priority == priority.value)
        if query:
            pattern = f"%{query}%"
            conditions.append(
                or_(
                    SupportTicketTable.ticket_number.ilike(pattern),
                    SupportTicketTable.name.ilike(pattern),
                    SupportTicketTable.email.ilike(pattern),
                    SupportTicketTable.subject.ilike(pattern),
                    SupportTicketTable.message.ilike(pattern),
                )
            )

        async with self._session_factory() as session:
            total = await session.scalar(select(func.count()).select_from(SupportTicketTable).where(*conditions))
            result = await session.execute(
                select(SupportTicketTable)
                .where(*conditions)
                .order_by(SupportTicketTable.created_at.desc())
                .offset(page.offset)
                .limit(page.limit)
            )
            items = [self._table_to_ticket(row) for row in result.scalars().all()]
        return Page(items=items, total=int(total or 0), page=page.page, limit=page.limit)

    async def compare_and_set_status(
        self,
        ticket_id: str,
        *,
        expected: TicketStatus,
        status: TicketStatus,
        updated_at: datetime,
    ) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(SupportTicketTable)
                    .where(SupportTicketTable.id == ticket_id, SupportTicketTable.status == expected.value)
                    .values(status=status.value, updated_at=updated_at)
                )
        return result.rowcount == 1

    async def update_ticket(self, ticket_id: str, *, updated_at: datetime, **values: Any) -> SupportTicket | None:
        async with self._session_factory() as session:
            ticket_row = await session.get(SupportTicketTable, ticket_id)
            if ticket_row is None:
                return None
            for key, value in values.items():
                setattr(ticket_row, key, value.value if isinstance(value, Enum) else value)
            ticket_row.updated_at = updated_at
            await session.commit()
            await session.refresh(ticket_row)
            return self._table_to_ticket(ticket_row)

    @staticmethod
    def _message_to_table(message: SupportMessage) -> SupportMessageTable:
        return SupportMessageTable(
            id=message.id,
            ticket_id=message.ticket_id,
            sender_role=message.sender_role.value,
            sender_id=message.sender_id,
            body=message.body,
            attachments=[item.as_dict() for item in message.attachments],
            created_at=message.created_at,
        )

    @staticmethod
    def _table_to_ticket(row: SupportTicketTable) -> SupportTicket:
        return SupportTicket(
            id=row.id,
            ticket_number=row.ticket_number,
            owner_id=row.owner_id,
            owner_role=TicketOwnerRole(row.owner_role),
            name=row.name,
            email=row.email,
            phone=row.phone or "",
            subject=row.subject,
            message=row.message,
            category=TicketCategory(row.category),
            status=TicketStatus(row.status),
            priority=TicketPriority(row.priority),
            attachments=normalize_attachments(row.attachments or []),
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at),
        )

    @staticmethod
    def _table_to_message(row: SupportMessageTable) -> SupportMessage:
        return SupportMessage(
            id=row.id,
            ticket_id=row.ticket_id,
            sender_role=SenderRole(row.sender_role),
            sender_id=row.sender_id,
            body=row.body,
            attachments=normalize_attachments(row.attachments or []),
            created_at=ensure_aware(row.created_at),
        )


class TicketService:
    """High level orchestration for ticket creation, threaded replies and status changes."""

    def __init__(
        self,
        repository: TicketRepository,
        *,
        code_generator: SequentialCodeGenerator,
        state_machine: TicketStateMachine | None = None,
        counter_name: str = DEFAULT_COUNTER_NAME,
        max_attachments: int = MAX_ATTACHMENTS,
        clock: Clock = utcnow,
    ) -> None:
        self._repository = repository
        self._code_generator = code_generator
        self._state_machine = state_machine or TicketStateMachine()
        self._counter_name = counter_name
        self._max_attachments = max_attachments
        self._clock = clock

    async def ensure_schema(self) -> None:
        await self._repository.ensure_schema()

    async def create_ticket(
        self,
        *,
        name: str,
        email: str,
        subject: str,
        message: str,
        phone: str = "",
        category: TicketCategory | str | None = None,
        attachments: Sequence[Any] = (),
        owner_id: str | None = None,
        owner_role: TicketOwnerRole = TicketOwnerRole.GUEST,
    ) -> TicketAggregate:
        name = sanitize_text(name)
        email = sanitize_text(email).lower()
        subject = sanitize_text(subject)
        body = sanitize_rich_text(message)
        if not (name and email and subject and body):
            raise ValidationFailedError("name, email, subject and message are required")

        ticket_number = await self._code_generator.next_code(self._counter_name)
        now = self._clock()
        files = normalize_attachments(attachments, limit=self._max_attachments)
        status = self._state_machine.initial_state()

        ticket = SupportTicket(
            id=str(uuid.uuid4()),
            ticket_number=ticket_number,
            owner_id=owner_id,
            owner_role=owner_role,
            name=name,
            email=email,
            phone=sanitize_text(phone),
            subject=subject,
            message=body,
            category=coerce_choice(TicketCategory, category, TicketCategory.OTHER),
            status=status,
            priority=TicketPriority.MEDIUM,
            attachments=files,
            created_at=now,
            updated_at=now,
        )
        first_message = SupportMessage(
            id=str(uuid.uuid4()),
            ticket_id=ticket.id,
            sender_role=SenderRole.USER,
            sender_id=owner_id,
            body=body,
            attachments=files,
            created_at=now,
        )
        await self._repository.create_ticket(ticket, first_message)
        logger.info("Support ticket %s created (%s)", ticket_number, owner_role.value)

        transition = TicketTransition(
            ticket_number=ticket_number,
            from_status=None,
            to_status=status,
            actor=owner_id,
            reason="created",
        )
        return TicketAggregate(ticket=ticket, messages=[first_message], transitions=[transition])

    async def get_ticket(self, ticket_number: str, *, owner_id: str | None = None) -> TicketAggregate:
        """Load a ticket by number; passing ``owner_id`` restricts the lookup to that owner."""

        number = normalize_ticket_number(ticket_number)
        aggregate = await self._repository.get_by_number(number)
        if aggregate is None or (owner_id is not None and aggregate.ticket.owner_id != owner_id):
            raise NotFoundError(f"Ticket {number} not found")
        return aggregate

    async def list_tickets(
        self,
        *,
        page: PageRequest,
        status: TicketStatus | None = None,
        category: TicketCategory | None = None,
        priority: TicketPriority | None = None,
        query: str | None = None,
    ) -> Page[SupportTicket]:
        return await self._repository.list_tickets(
            page=page,
            status=status,
            category=category,
            priority=priority,
            query=(query or "").strip() or None,
        )

    async def list_owner_tickets(self, owner_id: str, *, page: PageRequest) -> Page[SupportTicket]:
        return await self._repository.list_tickets(page=page, owner_id=owner_id)

    async def reply_as_owner(
        self,
        ticket_number: str,
        *,
        owner_id: str,
        body: str,
        attachments: Sequence[Any] = (),
    ) -> TicketAggregate:
        return await self.add_reply(
            ticket_number,
            body=body,
            sender_role=SenderRole.USER,
            sender_id=owner_id,
            attachments=attachments,
            owner_id=owner_id,
        )

    async def reply_as_operator(
        self,
        ticket_number: str,
        *,
        operator_id: str,
        body: str,
        attachments: Sequence[Any] = (),
    ) -> TicketAggregate:
        return await self.add_reply(
            ticket_number,
            body=body,
            sender_role=SenderRole.ADMIN,
            sender_id=operator_id,
            attachments=attachments,
        )

    async def add_reply(
        self,
        ticket_number: str,
        *,
        body: str,
        sender_role: SenderRole,
        sender_id: str | None,
        attachments: Sequence[Any] = (),
        owner_id: str | None = None,
    ) -> TicketAggregate:
        aggregate = await self.get_ticket(ticket_number, owner_id=owner_id)
        text = sanitize_rich_text(body)
        if not text:
            raise ValidationFailedError("message is required")

        now = self._clock()
        created_at = now
        if aggregate.messages and created_at <= aggregate.messages[-1].created_at:
            created_at = aggregate.messages[-1].created_at + timedelta(microseconds=1)

        message = SupportMessage(
            id=str(uuid.uuid4()),
            ticket_id=aggregate.ticket.id,
            sender_role=sender_role,
            sender_id=sender_id,
            body=text,
            attachments=normalize_attachments(attachments, limit=self._max_attachments),
            created_at=created_at,
        )
        await self._repository.add_message(message)

        ticket, transition = await self._apply_reply_transition(aggregate.ticket, sender_role, sender_id, now)
        if transition is None:
            ticket = await self._repository.update_ticket(ticket.id, updated_at=now) or replace(ticket, updated_at=now)

        return TicketAggregate(
            ticket=ticket,
            messages=[*aggregate.messages, message],
            transitions=[] if transition is None else [transition],
        )

    async def change_status(
        self,
        ticket_number: str,
        *,
        new_status: TicketStatus | str,
        actor: str,
    ) -> TicketAggregate:
        target = parse_status(new_status)
        aggregate = await self.get_ticket(ticket_number)
        current = aggregate.ticket.status
        self._state_machine.assert_transition(current, target)

        updated = await self._repository.update_ticket(aggregate.ticket.id, updated_at=self._clock(), status=target)
        if updated is None:
            raise ConcurrencyConflictError(f"Ticket {aggregate.ticket.ticket_number} disappeared during update")

        transition = TicketTransition(
            ticket_number=updated.ticket_number,
            from_status=current,
            to_status=target,
            actor=actor,
            reason="manual",
        )
        return TicketAggregate(ticket=updated, messages=list(aggregate.messages), transitions=[transition])

    async def change_priority(
        self,
        ticket_number: str,
        *,
        priority: TicketPriority | str,
        actor: str,
    ) -> TicketAggregate:
        value = parse_priority(priority)
        aggregate = await self.get_ticket(ticket_number)
        updated = await self._repository.update_ticket(aggregate.ticket.id, updated_at=self._clock(), priority=value)
        if updated is None:
            raise ConcurrencyConflictError(f"Ticket {aggregate.ticket.ticket_number} disappeared during update")
        logger.info("Ticket %s priority set to %s by %s", updated.ticket_number, value.value, actor)
        return TicketAggregate(ticket=updated, messages=list(aggregate.messages))

    async def _apply_reply_transition(
        self,
        ticket: SupportTicket,
        sender_role: SenderRole,
        actor: str | None,
        now: datetime,
    ) -> tuple[SupportTicket, TicketTransition | None]:
        for attempt in range(2):
            target = self._state_machine.on_reply(ticket.status, sender_role)
            if target == ticket.status:
                return ticket, None
            if await self._repository.compare_and_set_status(
                ticket.id, expected=ticket.status, status=target, updated_at=now
            ):
                logger.info(
                    "Ticket %s moved %s -> %s after %s reply",
                    ticket.ticket_number,
                    ticket.status.value,
                    target.value,
                    sender_role.value,
                )
                transition = TicketTransition(
                    ticket_number=ticket.ticket_number,
                    from_status=ticket.status,
                    to_status=target,
                    actor=actor,
                    reason="reply",
                )
                return replace(ticket, status=target, updated_at=now), transition

            logger.warning("Ticket %s status changed concurrently; re-reading", ticket.ticket_number)
            fresh = await self._repository.get_ticket(ticket.id)
            if fresh is None:
                break
            ticket = fresh
        raise ConcurrencyConflictError(f"Ticket {ticket.ticket_number} status could not be updated")
