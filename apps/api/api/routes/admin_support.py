from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from apps.api.api.schemas import (
    PageModel,
    TicketDetailModel,
    TicketModel,
    TicketPriorityChangeRequest,
    TicketReplyRequest,
    TicketStatusChangeRequest,
)
from apps.api.dependencies.auth import AdminUser
from apps.api.dependencies.services import PageDep, TicketServiceDep
from apps.api.services.sanitize import coerce_choice
from apps.api.services.tickets import TicketCategory, parse_priority, parse_status

router = APIRouter(prefix="/admin/support", tags=["admin-support"])


@router.get("/tickets", response_model=PageModel[TicketModel], summary="Filterable ticket queue")
async def list_tickets(
    service: TicketServiceDep,
    user: AdminUser,
    page: PageDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    category: str | None = None,
    priority: str | None = None,
    q: str | None = None,
) -> PageModel:
    result = await service.list_tickets(
        page=page,
        status=parse_status(status_filter) if status_filter else None,
        category=coerce_choice(TicketCategory, category, None),
        priority=parse_priority(priority) if priority else None,
        query=q,
    )
    return PageModel.from_page(result, TicketModel)


@router.get("/tickets/{ticket_number}", response_model=TicketDetailModel)
async def get_ticket(ticket_number: str, service: TicketServiceDep, user: AdminUser) -> TicketDetailModel:
    return TicketDetailModel.from_aggregate(await service.get_ticket(ticket_number))


@router.post(
    "/tickets/{ticket_number}/messages",
    response_model=TicketDetailModel,
    status_code=status.HTTP_201_CREATED,
)
async def reply_to_ticket(
    ticket_number: str,
    payload: TicketReplyRequest,
    service: TicketServiceDep,
    user: AdminUser,
) -> TicketDetailModel:
    aggregate = await service.reply_as_operator(
        ticket_number,
        operator_id=user.user_id,
        body=payload.message,
        attachments=payload.attachments,
    )
    return TicketDetailModel.from_aggregate(aggregate)


@router.patch("/tickets/{ticket_number}/status", response_model=TicketDetailModel)
async def change_ticket_status(
    ticket_number: str,
    payload: TicketStatusChangeRequest,
    service: TicketServiceDep,
    user: AdminUser,
) -> TicketDetailModel:
    aggregate = await service.change_status(ticket_number, new_status=payload.status, actor=user.username)
    return TicketDetailModel.from_aggregate(aggregate)


@router.patch("/tickets/{ticket_number}/priority", response_model=TicketDetailModel)
async def change_ticket_priority(
    ticket_number: str,
    payload: TicketPriorityChangeRequest,
    service: TicketServiceDep,
    user: AdminUser,
) -> TicketDetailModel:
    aggregate = await service.change_priority(ticket_number, priority=payload.priority, actor=user.username)
    return TicketDetailModel.from_aggregate(aggregate)
