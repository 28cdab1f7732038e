from __future__ import annotations

from fastapi import APIRouter, status

from apps.api.api.schemas import AddressBookModel, AddressWriteRequest
from apps.api.dependencies.auth import AuthenticatedUser
from apps.api.dependencies.services import AddressBookServiceDep

router = APIRouter(prefix="/addresses", tags=["addresses"])


@router.get("", response_model=AddressBookModel, summary="Caller's address book")
async def get_address_book(service: AddressBookServiceDep, user: AuthenticatedUser) -> AddressBookModel:
    return AddressBookModel.from_entity(await service.get_book(user.user_id))


@router.post("", response_model=AddressBookModel, status_code=status.HTTP_201_CREATED)
async def add_address(
    payload: AddressWriteRequest,
    service: AddressBookServiceDep,
    user: AuthenticatedUser,
) -> AddressBookModel:
    book = await service.add_address(user.user_id, payload.model_dump(exclude_none=True))
    return AddressBookModel.from_entity(book)


@router.patch("/{address_id}", response_model=AddressBookModel)
async def update_address(
    address_id: str,
    payload: AddressWriteRequest,
    service: AddressBookServiceDep,
    user: AuthenticatedUser,
) -> AddressBookModel:
    book = await service.update_address(user.user_id, address_id, payload.model_dump(exclude_unset=True))
    return AddressBookModel.from_entity(book)


@router.post("/{address_id}/default", response_model=AddressBookModel)
async def set_default_address(
    address_id: str,
    service: AddressBookServiceDep,
    user: AuthenticatedUser,
) -> AddressBookModel:
    return AddressBookModel.from_entity(await service.set_default_address(user.user_id, address_id))


@router.delete("/{address_id}", response_model=AddressBookModel)
async def delete_address(
    address_id: str,
    service: AddressBookServiceDep,
    user: AuthenticatedUser,
) -> AddressBookModel:
    return AddressBookModel.from_entity(await service.remove_address(user.user_id, address_id))
