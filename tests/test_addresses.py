from __future__ import annotations

import random

import pytest

from apps.api.services.addresses import (
    AddressBook,
    AddressBookRepository,
    AddressBookService,
    AddressEntry,
    has_single_default,
    insert_entry,
    remove_entry,
    set_default,
    update_entry,
)
from apps.api.services.errors import ConcurrencyConflictError, NotFoundError, ValidationFailedError


def _entry(entry_id: str, *, is_default: bool = False) -> AddressEntry:
    return AddressEntry(
        id=entry_id,
        name="Rina",
        phone="+62 812 0000",
        address_line1=f"Jl. Merdeka {entry_id}",
        city="Bandung",
        province="Jawa Barat",
        postal_code="40111",
        is_default=is_default,
    )


def _defaults(entries) -> list[str]:
    return [entry.id for entry in entries if entry.is_default]


def test_first_entry_is_always_default():
    assert _defaults(insert_entry([], _entry("a"))) == ["a"]


def test_insert_with_default_request_moves_the_flag():
    entries = insert_entry(insert_entry([], _entry("a")), _entry("b"))
    assert _defaults(entries) == ["a"]

    entries = insert_entry(entries, _entry("c", is_default=True))
    assert _defaults(entries) == ["c"]
    assert [entry.id for entry in entries] == ["a", "b", "c"]


def test_update_to_default_clears_others():
    entries = insert_entry(insert_entry([], _entry("a")), _entry("b"))

    entries = update_entry(entries, "b", {"is_default": True, "city": "Jakarta"})

    assert _defaults(entries) == ["b"]
    assert entries[1].city == "Jakarta"


def test_clearing_default_hands_flag_to_first_other_entry():
    entries = insert_entry(insert_entry(insert_entry([], _entry("a")), _entry("b")), _entry("c"))

    entries = update_entry(entries, "a", {"is_default": False})

    assert _defaults(entries) == ["b"]


def test_lone_entry_stays_default():
    entries = update_entry(insert_entry([], _entry("a")), "a", {"is_default": False})
    assert _defaults(entries) == ["a"]


def test_remove_default_promotes_first_remaining():
    entries = insert_entry(insert_entry(insert_entry([], _entry("a")), _entry("b")), _entry("c", is_default=True))

    entries = remove_entry(entries, "c")
    assert _defaults(entries) == ["a"]

    entries = remove_entry(remove_entry(entries, "a"), "b")
    assert entries == []


def test_update_cannot_blank_required_fields():
    entries = insert_entry([], _entry("a"))
    with pytest.raises(ValidationFailedError):
        update_entry(entries, "a", {"phone": "  "})


def test_unknown_entry_raises_not_found():
    with pytest.raises(NotFoundError):
        remove_entry([_entry("a", is_default=True)], "zzz")
    with pytest.raises(NotFoundError):
        set_default([], "zzz")


def test_random_mutation_sequences_keep_a_single_default():
    rng = random.Random(20240301)
    for _ in range(200):
        entries: list[AddressEntry] = []
        counter = 0
        for _ in range(25):
            action = rng.choice(["insert", "insert", "update", "remove", "default"])
            if action == "insert" or not entries:
                counter += 1
                entries = insert_entry(entries, _entry(str(counter), is_default=rng.random() < 0.3))
            elif action == "update":
                target = rng.choice(entries).id
                entries = update_entry(entries, target, {"is_default": rng.random() < 0.5})
            elif action == "remove":
                entries = remove_entry(entries, rng.choice(entries).id)
            else:
                entries = set_default(entries, rng.choice(entries).id)
            assert has_single_default(entries)


def test_from_payload_requires_contact_fields():
    with pytest.raises(ValidationFailedError):
        AddressEntry.from_payload({"name": "Rina", "phone": "1"})


@pytest.fixture
def address_service(session_factory, engine) -> AddressBookService:
    return AddressBookService(AddressBookRepository(session_factory, engine=engine))


def _payload(line: str, **extra):
    return {
        "name": "Rina",
        "phone": "+62 812 0000",
        "address_line1": line,
        "city": "Bandung",
        "province": "Jawa Barat",
        "postal_code": "40111",
        **extra,
    }


@pytest.mark.asyncio
async def test_book_is_created_lazily(address_service: AddressBookService):
    book = await address_service.get_book("customer-1")
    again = await address_service.get_book("customer-1")

    assert book.addresses == []
    assert again.version == book.version == 0


@pytest.mark.asyncio
async def test_service_persists_mutations_with_version_bumps(address_service: AddressBookService):
    book = await address_service.add_address("customer-1", _payload("Jl. A"))
    book = await address_service.add_address("customer-1", _payload("Jl. B", is_default=True))
    first_id, second_id = (entry.id for entry in book.addresses)

    assert book.version == 2
    assert book.default_address.id == second_id

    book = await address_service.remove_address("customer-1", second_id)
    stored = await address_service.get_book("customer-1")

    assert stored.version == 3
    assert [entry.id for entry in stored.addresses] == [first_id]
    assert stored.default_address.id == first_id


@pytest.mark.asyncio
async def test_service_retries_once_then_surfaces_conflict():
    class RacingRepository:
        def __init__(self):
            self.writes = 0

        async def get_or_create(self, owner_id):
            return AddressBook(owner_id=owner_id, addresses=[], version=self.writes)

        async def compare_and_swap(self, book, addresses):
            self.writes += 1
            return None

    repository = RacingRepository()
    service = AddressBookService(repository)  # type: ignore[arg-type]

    with pytest.raises(ConcurrencyConflictError):
        await service.add_address("customer-1", _payload("Jl. A"))
    assert repository.writes == 2


@pytest.mark.asyncio
async def test_stale_version_is_rejected(session_factory, engine):
    repository = AddressBookRepository(session_factory, engine=engine)
    book = await repository.get_or_create("customer-1")

    assert await repository.compare_and_swap(book, [_entry("a", is_default=True)]) is not None
    assert await repository.compare_and_swap(book, [_entry("b", is_default=True)]) is None


def test_from_payload_enforces_field_length_limits():
    payload = _payload("Jl. A", postal_code="4" * 31)

    with pytest.raises(ValidationFailedError) as exc:
        AddressEntry.from_payload(payload)
    assert "postal_code" in str(exc.value)

    accepted = AddressEntry.from_payload(_payload("J" * 200, label="L" * 50, name="N" * 120))
    assert len(accepted.address_line1) == 200


def test_update_enforces_field_length_limits():
    entries = insert_entry([], _entry("a"))

    with pytest.raises(ValidationFailedError):
        update_entry(entries, "a", {"label": "x" * 51})
    with pytest.raises(ValidationFailedError):
        update_entry(entries, "a", {"phone": "1" * 41})
    assert update_entry(entries, "a", {"city": "  " + "c" * 120 + "  "})[0].city == "c" * 120
