from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Mapping, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, select

from apps.api.core.clock import Clock, utcnow
from packages.db.dialects import ensure_aware, upsert_insert
from packages.db.models import AddressBookTable

from .errors import ConcurrencyConflictError, NotFoundError, ValidationFailedError
from .sanitize import sanitize_text, to_bool

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "phone", "address_line1", "city", "province", "postal_code")
_TEXT_FIELDS = ("label", "name", "phone", "address_line1", "address_line2", "city", "province", "postal_code")
MAX_LENGTHS = {
    "label": 50,
    "name": 120,
    "phone": 40,
    "address_line1": 200,
    "address_line2": 200,
    "city": 120,
    "province": 120,
    "postal_code": 30,
}


def _check_lengths(values: Mapping[str, str]) -> None:
    too_long = [name for name, value in values.items() if len(value) > MAX_LENGTHS.get(name, len(value))]
    if too_long:
        limits = ", ".join(f"{name} (max {MAX_LENGTHS[name]})" for name in too_long)
        raise ValidationFailedError(f"Address fields are too long: {limits}")


@dataclass(slots=True, frozen=True)
class AddressEntry:
    id: str
    name: str
    phone: str
    address_line1: str
    city: str
    province: str
    postal_code: str
    label: str = ""
    address_line2: str = ""
    is_default: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, entry_id: str | None = None) -> "AddressEntry":
        values = {name: sanitize_text(payload.get(name)) for name in _TEXT_FIELDS}
        missing = [name for name in REQUIRED_FIELDS if not values[name]]
        if missing:
            raise ValidationFailedError(f"Required address fields are missing: {', '.join(missing)}")
        _check_lengths(values)
        return cls(
            id=entry_id or str(payload.get("id") or uuid.uuid4().hex),
            is_default=to_bool(payload.get("is_default")),
            **values,
        )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class AddressBook:
    owner_id: str
    addresses: Sequence[AddressEntry] = field(default_factory=list)
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def default_address(self) -> AddressEntry | None:
        return next((entry for entry in self.addresses if entry.is_default), None)


def has_single_default(entries: Sequence[AddressEntry]) -> bool:
    """True when the list is empty or exactly one entry is flagged default."""

    if not entries:
        return True
    return sum(1 for entry in entries if entry.is_default) == 1


def _index_of(entries: Sequence[AddressEntry], entry_id: str) -> int:
    for index, entry in enumerate(entries):
        if entry.id == entry_id:
            return index
    raise NotFoundError(f"Address {entry_id} not found")


def _with_default_at(entries: Sequence[AddressEntry], index: int) -> list[AddressEntry]:
    return [replace(entry, is_default=position == index) for position, entry in enumerate(entries)]


def insert_entry(entries: Sequence[AddressEntry], entry: AddressEntry) -> list[AddressEntry]:
    """Append ``entry``; a requested default or the first entry takes the flag."""

    if entry.is_default or not entries:
        return _with_default_at([*entries, entry], len(entries))
    return [*entries, replace(entry, is_default=False)]


def update_entry(entries: Sequence[AddressEntry], entry_id: str, patch: Mapping[str, Any]) -> list[AddressEntry]:
    index = _index_of(entries, entry_id)
    current = entries[index]

    changes = {name: sanitize_text(patch[name]) for name in _TEXT_FIELDS if name in patch}
    blanked = [name for name in REQUIRED_FIELDS if name in changes and not changes[name]]
    if blanked:
        raise ValidationFailedError(f"Required address fields are missing: {', '.join(blanked)}")
    _check_lengths(changes)

    updated = list(entries)
    updated[index] = replace(current, **changes)

    if "is_default" not in patch:
        return updated
    if to_bool(patch["is_default"]):
        return _with_default_at(updated, index)
    if current.is_default and len(updated) > 1:
        # the flag moves to the first other entry
        successor = 0 if index != 0 else 1
        return _with_default_at(updated, successor)
    return updated


def remove_entry(entries: Sequence[AddressEntry], entry_id: str) -> list[AddressEntry]:
    index = _index_of(entries, entry_id)
    removed = entries[index]
    remaining = [entry for position, entry in enumerate(entries) if position != index]
    if removed.is_default and remaining:
        return _with_default_at(remaining, 0)
    return remaining


def set_default(entries: Sequence[AddressEntry], entry_id: str) -> list[AddressEntry]:
    return _with_default_at(entries, _index_of(entries, entry_id))


class AddressBookRepository:
    """Whole-document storage for address books with version compare-and-swap."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine
        self._clock = clock

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        async with self._engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)

    async def get_or_create(self, owner_id: str) -> AddressBook:
        table = AddressBookTable.__table__
        async with self._session_factory() as session:
            row = await self._select(session, owner_id)
            if row is None:
                now = self._clock()
                statement = (
                    upsert_insert(session, table)
                    .values(id=str(uuid.uuid4()), owner_id=owner_id, addresses=[], version=0, created_at=now, updated_at=now)
                    .on_conflict_do_nothing(index_elements=[table.c.owner_id])
                )
                await session.execute(statement)
                await session.commit()
                row = await self._select(session, owner_id)
            if row is None:
                raise ConcurrencyConflictError(f"Address book for {owner_id} could not be created")
            return self._to_book(row)

    async def compare_and_swap(
        self,
        book: AddressBook,
        addresses: Sequence[AddressEntry],
    ) -> AddressBook | None:
        """Write ``addresses`` if the stored version still matches ``book.version``."""

        now = self._clock()
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(AddressBookTable)
                    .where(AddressBookTable.owner_id == book.owner_id, AddressBookTable.version == book.version)
                    .values(
                        addresses=[entry.as_dict() for entry in addresses],
                        version=book.version + 1,
                        updated_at=now,
                    )
                )
        if result.rowcount != 1:
            return None
        return replace(book, addresses=list(addresses), version=book.version + 1, updated_at=now)

    @staticmethod
    async def _select(session: AsyncSession, owner_id: str) -> AddressBookTable | None:
        result = await session.execute(
            select(AddressBookTable)
            .where(AddressBookTable.owner_id == owner_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    def _to_book(row: AddressBookTable) -> AddressBook:
        return AddressBook(
            owner_id=row.owner_id,
            addresses=[AddressEntry(**item) for item in row.addresses or []],
            version=row.version,
            created_at=ensure_aware(row.created_at),
            updated_at=ensure_aware(row.updated_at),
        )


class AddressBookService:
    """Apply address edits against the owner's current book."""

    def __init__(self, repository: AddressBookRepository) -> None:
        self._repository = repository

    async def ensure_schema(self) -> None:
        await self._repository.ensure_schema()

    async def get_book(self, owner_id: str) -> AddressBook:
        return await self._repository.get_or_create(owner_id)

    async def add_address(self, owner_id: str, payload: Mapping[str, Any]) -> AddressBook:
        entry = AddressEntry.from_payload(payload, entry_id=uuid.uuid4().hex)
        return await self._mutate(owner_id, lambda entries: insert_entry(entries, entry))

    async def update_address(self, owner_id: str, address_id: str, patch: Mapping[str, Any]) -> AddressBook:
        return await self._mutate(owner_id, lambda entries: update_entry(entries, address_id, patch))

    async def remove_address(self, owner_id: str, address_id: str) -> AddressBook:
        return await self._mutate(owner_id, lambda entries: remove_entry(entries, address_id))

    async def set_default_address(self, owner_id: str, address_id: str) -> AddressBook:
        return await self._mutate(owner_id, lambda entries: set_default(entries, address_id))

    async def _mutate(
        self,
        owner_id: str,
        operation: Callable[[Sequence[AddressEntry]], list[AddressEntry]],
    ) -> AddressBook:
        for attempt in range(2):
            book = await self._repository.get_or_create(owner_id)
            saved = await self._repository.compare_and_swap(book, operation(book.addresses))
            if saved is not None:
                return saved
            logger.warning("Address book for %s changed concurrently (attempt %d)", owner_id, attempt + 1)
        raise ConcurrencyConflictError(f"Address book for {owner_id} was modified concurrently")
