"""
Ticket Application Layer
========================

Application layer for the ticket module.

Contains:
- Services: Orchestrate domain rules and coordinate with the repository
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and the repository interface,
but not on concrete infrastructure implementations.
"""

from helpdesk.tickets.application.dto import (
    TicketCreateDTO,
    TicketUpdateDTO,
    CommentCreateDTO,
    CommentResponse,
    TicketResponse,
    TicketListResponse,
    SLAStatusBreakdown,
    StatsResponse,
)
from helpdesk.tickets.application.services import (
    TicketService,
    ITicketRepository,
    utc_now,
)

__all__ = [
    # DTOs
    "TicketCreateDTO",
    "TicketUpdateDTO",
    "CommentCreateDTO",
    "CommentResponse",
    "TicketResponse",
    "TicketListResponse",
    "SLAStatusBreakdown",
    "StatsResponse",
    # Services
    "TicketService",
    "ITicketRepository",
    "utc_now",
]
