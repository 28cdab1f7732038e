from __future__ import annotations

from fastapi import APIRouter, status

from apps.api.api.schemas import (
    PageModel,
    TicketCreateRequest,
    TicketDetailModel,
    TicketModel,
    TicketReplyRequest,
)
from apps.api.dependencies.auth import AuthenticatedUser, CurrentUser
from apps.api.dependencies.services import PageDep, TicketServiceDep
from apps.api.services.tickets import owner_role_for

router = APIRouter(prefix="/support", tags=["support"])


@router.post(
    "/tickets",
    response_model=TicketDetailModel,
    status_code=status.HTTP_201_CREATED,
    summary="Open a support ticket (guests allowed)",
)
async def create_ticket(
    payload: TicketCreateRequest,
    service: TicketServiceDep,
    user: CurrentUser,
) -> TicketDetailModel:
    aggregate = await service.create_ticket(
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        subject=payload.subject,
        message=payload.message,
        category=payload.category,
        attachments=payload.attachments,
        owner_id=user.user_id,
        owner_role=owner_role_for(user.account_role),
    )
    return TicketDetailModel.from_aggregate(aggregate)


@router.get("/tickets", response_model=PageModel[TicketModel], summary="Tickets opened by the caller")
async def list_my_tickets(service: TicketServiceDep, user: AuthenticatedUser, page: PageDep) -> PageModel:
    result = await service.list_owner_tickets(user.user_id, page=page)
    return PageModel.from_page(result, TicketModel)


@router.get("/tickets/{ticket_number}", response_model=TicketDetailModel)
async def get_my_ticket(ticket_number: str, service: TicketServiceDep, user: AuthenticatedUser) -> TicketDetailModel:
    aggregate = await service.get_ticket(ticket_number, owner_id=user.user_id)
    return TicketDetailModel.from_aggregate(aggregate)


@router.post(
    "/tickets/{ticket_number}/messages",
    response_model=TicketDetailModel,
    status_code=status.HTTP_201_CREATED,
)
async def reply_to_ticket(
    ticket_number: str,
    payload: TicketReplyRequest,
    service: TicketServiceDep,
    user: AuthenticatedUser,
) -> TicketDetailModel:
    aggregate = await service.reply_as_owner(
        ticket_number,
        owner_id=user.user_id,
        body=payload.message,
        attachments=payload.attachments,
    )
    return TicketDetailModel.from_aggregate(aggregate)
