"""
Ticket Controllers (API Routes)
===============================

FastAPI routes for the help-desk ticket endpoints.

Controllers are thin - they resolve the principal, delegate to the
ticket service and shape the response. Domain exceptions are mapped to
HTTP status codes by the shared exception handlers.
"""

from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from helpdesk.config import get_settings
from helpdesk.shared.api.auth import get_principal
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.application import (
    StatsResponse,
    TicketCreateDTO,
    TicketListResponse,
    TicketResponse,
    TicketService,
)
from helpdesk.tickets.domain import (
    LifecycleEngine,
    Principal,
    ReportingEngine,
    SLAPolicy,
    Ticket,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/tickets", tags=["Tickets"])


# ========== Example payloads for Swagger ==========

TICKET_CREATE_EXAMPLE = {
    "title": "Cannot log in",
    "description": "Password reset email never arrives.",
    "priority": "high",
    "category": "technical"
}

STATS_RESPONSE_EXAMPLE = {
    "total_tickets": 4,
    "open_tickets": 1,
    "pending_tickets": 1,
    "resolved_tickets": 1,
    "closed_tickets": 1,
    "avg_resolution_time": 180,
    "sla_compliance_rate": 50,
    "sla_compliant_tickets": 1,
    "priority_stats": {"high": 2, "low": 2},
    "category_stats": {"technical": 3, "billing": 1},
    "status_stats": {"open": 1, "pending": 1, "resolved": 1, "closed": 1},
    "recent_tickets": 2,
    "sla_status": {"normal": 1, "warning": 0, "breached": 1},
    "generated_at": "2024-01-15T10:00:00Z"
}


# ========== Dependencies ==========

def get_ticket_service(request: Request) -> TicketService:
    """Get ticket service instance bound to the application's ticket store."""
    settings = get_settings()
    policy = SLAPolicy.from_settings(settings)
    return TicketService(
        request.app.state.ticket_repository,
        lifecycle=LifecycleEngine(policy),
        reporting=ReportingEngine(policy, timedelta(days=settings.recent_ticket_days)),
    )


def _page_size(limit: Optional[int]) -> int:
    settings = get_settings()
    if limit is None:
        return settings.default_page_size
    return min(limit, settings.max_page_size)


def _respond(service: TicketService, ticket: Ticket) -> TicketResponse:
    return TicketResponse.from_domain(ticket, service.sla_status(ticket))


def _page(
    service: TicketService,
    tickets: List[Ticket],
    total: int,
    limit: int,
    offset: int
) -> TicketListResponse:
    return TicketListResponse(
        tickets=[_respond(service, t) for t in tickets],
        total_count=total,
        limit=limit,
        offset=offset
    )


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="File a ticket",
    description="""
    File a new ticket on behalf of the caller.

    The ticket starts `open`, unassigned, with an SLA deadline of
    creation time plus the resolution window.
    """,
    responses={
        201: {"description": "Ticket created"},
        400: {"description": "Missing or invalid field"},
        401: {"description": "Missing or invalid bearer token"}
    },
    openapi_extra={"requestBody": {"content": {"application/json": {"example": TICKET_CREATE_EXAMPLE}}}}
)
async def create_ticket(
    payload: TicketCreateDTO,
    principal: Principal = Depends(get_principal),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.create_ticket(principal, payload)
    return _respond(service, ticket)


@router.get(
    "",
    response_model=TicketListResponse,
    summary="List visible tickets",
    description="Tickets visible to the caller, newest first."
)
async def list_tickets(
    limit: Optional[int] = Query(None, ge=1, description="Page size"),
    offset: int = Query(0, ge=0, description="Tickets to skip"),
    principal: Principal = Depends(get_principal),
    service: TicketService = Depends(get_ticket_service)
):
    page_size = _page_size(limit)
    tickets, total = await service.list_tickets(principal, limit=page_size, offset=offset)
    return _page(service, tickets, total, page_size, offset)


@router.get(
    "/mine",
    response_model=TicketListResponse,
    summary="Tickets I filed",
    responses={403: {"description": "Caller is not a user"}}
)
async def list_my_tickets(
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    service: TicketService = Depends(get_ticket_service)
):
    page_size = _page_size(limit)
    tickets, total = await service.list_created(principal, limit=page_size, offset=offset)
    return _page(service, tickets, total, page_size, offset)


@router.get(
    "/assigned",
    response_model=TicketListResponse,
    summary="Tickets assigned to me",
    responses={403: {"description": "Caller is not an agent"}}
)
async def list_assigned_tickets(
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    service: TicketService = Depends(get_ticket_service)
):
    page_size = _page_size(limit)
    tickets, total = await service.list_assigned(principal, limit=page_size, offset=offset)
    return _page(service, tickets, total, page_size, offset)


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Reporting dashboard",
    description="""
    Counts, distributions, average resolution time and SLA compliance
    over the caller's scope. Admins see every ticket, agents their
    assigned tickets. Users have no reporting access.
    """,
    responses={
        200: {
            "description": "Dashboard metrics",
            "content": {"application/json": {"example": STATS_RESPONSE_EXAMPLE}}
        },
        403: {"description": "Caller has no reporting access"}
    }
)
async def get_ticket_stats(
    principal: Principal = Depends(get_principal),
    service: TicketService = Depends(get_ticket_service)
):
    report = await service.get_stats(principal)
    return StatsResponse.from_domain(report)


@router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Get a ticket",
    responses={
        403: {"description": "Ticket exists but is not visible to the caller"},
        404: {"description": "Ticket not found"}
    }
)
async def get_ticket(
    ticket_id: str,
    principal: Principal = Depends(get_principal),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.get_ticket(principal, ticket_id)
    return _respond(service, ticket)


@router.patch(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Update a ticket",
    description="""
    Partial update. Only the fields sent are changed.

    Moving a ticket to `resolved` for the first time records
    `resolved_at` and `resolution_time` (minutes since creation).
    """,
    responses={
        400: {"description": "Invalid field or read-only field sent"},
        403: {"description": "Caller may not modify this ticket"},
        404: {"description": "Ticket not found"}
    }
)
async def update_ticket(
    ticket_id: str,
    payload: dict,
    principal: Principal = Depends(get_principal),
    service: TicketService = Depends(get_ticket_service)
):
    # Body is validated after the existence and access checks
    ticket = await service.update_ticket(principal, ticket_id, payload)
    return _respond(service, ticket)


@router.post(
    "/{ticket_id}/comments",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a ticket",
    responses={
        400: {"description": "Empty comment"},
        403: {"description": "Caller may not comment on this ticket"},
        404: {"description": "Ticket not found"}
    }
)
async def add_comment(
    ticket_id: str,
    payload: dict,
    principal: Principal = Depends(get_principal),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.add_comment(
        principal,
        ticket_id,
        payload.get("text"),
        is_internal=payload.get("is_internal", False)
    )
    return _respond(service, ticket)
