"""
Ticket Application DTOs
=======================

Data Transfer Objects for the ticket API layer.

These Pydantic models handle serialization/deserialization and validation
for requests and responses.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from helpdesk.config import TITLE_MAX_LENGTH


# ========== Type Aliases for Literals ==========
TicketStatusStr = Literal["open", "pending", "resolved", "closed"]
TicketPriorityStr = Literal["low", "medium", "high", "urgent"]
TicketCategoryStr = Literal["technical", "billing", "general", "feature-request", "bug"]
SLAStatusStr = Literal["completed", "breached", "warning", "normal"]


# ========== Request DTOs ==========

class TicketCreateDTO(BaseModel):
    """DTO for filing a ticket."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH, description="Short summary")
    description: str = Field(..., min_length=1, description="Full problem description")
    priority: TicketPriorityStr = Field(..., description="Ticket priority")
    category: TicketCategoryStr = Field(..., description="Ticket category")


class TicketUpdateDTO(BaseModel):
    """
    DTO for a partial ticket update.

    Only fields present in the request are applied. Fields owned by the
    lifecycle (deadline, resolution, author, comments) are rejected.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(None, min_length=1)
    status: Optional[TicketStatusStr] = None
    priority: Optional[TicketPriorityStr] = None
    category: Optional[TicketCategoryStr] = None
    assigned_to: Optional[str] = Field(None, min_length=1, description="Agent id, null to unassign")

    @field_validator("title", "description", "status", "priority", "category", mode="before")
    @classmethod
    def reject_null(cls, v):
        """Required ticket fields can be changed but not cleared."""
        if v is None:
            raise ValueError("field cannot be null")
        return v


class CommentCreateDTO(BaseModel):
    """DTO for appending a comment."""
    model_config = ConfigDict(str_strip_whitespace=True)

    text: str = Field(..., min_length=1, description="Comment body")
    is_internal: bool = Field(default=False, description="Internal note flag")


# ========== Response DTOs ==========

class CommentResponse(BaseModel):
    """Response model for a ticket comment."""
    id: str
    author: str
    text: str
    is_internal: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, comment) -> "CommentResponse":
        return cls(
            id=comment.id,
            author=comment.author,
            text=comment.text,
            is_internal=comment.is_internal,
            created_at=comment.created_at,
        )


class TicketResponse(BaseModel):
    """Response model for a ticket, including its live SLA status."""
    id: str
    title: str
    description: str
    status: TicketStatusStr
    priority: TicketPriorityStr
    category: TicketCategoryStr
    created_by: str
    assigned_to: Optional[str] = None
    sla_deadline: datetime
    sla_status: SLAStatusStr
    resolved_at: Optional[datetime] = None
    resolution_time: Optional[int] = Field(None, description="Minutes from creation to resolution")
    comments: List[CommentResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, ticket, sla_status) -> "TicketResponse":
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            status=ticket.status.value,
            priority=ticket.priority.value,
            category=ticket.category.value,
            created_by=ticket.created_by,
            assigned_to=ticket.assigned_to,
            sla_deadline=ticket.sla_deadline,
            sla_status=sla_status.value,
            resolved_at=ticket.resolved_at,
            resolution_time=ticket.resolution_time,
            comments=[CommentResponse.from_domain(c) for c in ticket.comments],
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )


class TicketListResponse(BaseModel):
    """Response model for a page of tickets."""
    tickets: List[TicketResponse]
    total_count: int = Field(..., description="Tickets visible to the caller")
    limit: int
    offset: int


class SLAStatusBreakdown(BaseModel):
    """Live SLA state of tickets that are not yet resolved or closed."""
    normal: int = 0
    warning: int = 0
    breached: int = 0


class StatsResponse(BaseModel):
    """Response model for the reporting dashboard."""
    # Basic counts
    total_tickets: int
    open_tickets: int
    pending_tickets: int
    resolved_tickets: int
    closed_tickets: int

    # Performance metrics
    avg_resolution_time: int = Field(..., description="Mean resolution time in minutes, 0 if none")
    sla_compliance_rate: int = Field(..., description="Percentage resolved within SLA, 0 if none")
    sla_compliant_tickets: int

    # Distributions
    priority_stats: Dict[str, int]
    category_stats: Dict[str, int]
    status_stats: Dict[str, int]

    # Activity
    recent_tickets: int

    # Current SLA status
    sla_status: SLAStatusBreakdown
    generated_at: datetime

    @classmethod
    def from_domain(cls, report) -> "StatsResponse":
        return cls(
            total_tickets=report.total_tickets,
            open_tickets=report.open_tickets,
            pending_tickets=report.pending_tickets,
            resolved_tickets=report.resolved_tickets,
            closed_tickets=report.closed_tickets,
            avg_resolution_time=report.avg_resolution_time,
            sla_compliance_rate=report.sla_compliance_rate,
            sla_compliant_tickets=report.sla_compliant_tickets,
            priority_stats=report.priority_stats,
            category_stats=report.category_stats,
            status_stats=report.status_stats,
            recent_tickets=report.recent_tickets,
            sla_status=SLAStatusBreakdown(**report.sla_status),
            generated_at=report.generated_at,
        )
