"""
Ticket Domain Entities
======================

Pure Python domain entities for the help-desk ticket engine.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from helpdesk.config import (
    Role, TicketStatus, TicketPriority, TicketCategory, FINISHED_STATUSES
)


@dataclass(frozen=True)
class Principal:
    """
    The authenticated actor performing an operation.

    Supplied by the authentication collaborator and immutable for the
    lifetime of a request.
    """
    id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_agent(self) -> bool:
        return self.role == Role.AGENT

    @property
    def is_user(self) -> bool:
        return self.role == Role.USER


@dataclass
class Comment:
    """A single entry in a ticket's append-only discussion."""
    id: str
    author: str
    text: str
    created_at: datetime
    is_internal: bool = False


@dataclass
class Ticket:
    """
    Ticket entity representing a support request.

    Derived SLA classification is not stored here; it depends on the
    current time and is computed on every read by SLACalculator.
    """

    # Core attributes
    id: str
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    category: TicketCategory
    created_by: str

    # SLA tracking
    sla_deadline: datetime

    # Timestamps
    created_at: datetime
    updated_at: datetime

    assigned_to: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_time: Optional[int] = None  # minutes
    comments: List[Comment] = field(default_factory=list)

    def __post_init__(self):
        """Validate ticket on initialization."""
        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be before created_at")

        if (self.resolved_at is None) != (self.resolution_time is None):
            raise ValueError("resolved_at and resolution_time must be set together")

    @property
    def is_finished(self) -> bool:
        """Check if ticket is resolved or closed."""
        return self.status in FINISHED_STATUSES

    @property
    def has_been_resolved(self) -> bool:
        return self.resolved_at is not None


@dataclass
class TicketDraft:
    """A ticket ready to be persisted, before the store assigns an id."""
    title: str
    description: str
    priority: TicketPriority
    category: TicketCategory
    created_by: str
    status: TicketStatus
    sla_deadline: datetime
    created_at: datetime


@dataclass
class StatsReport:
    """
    Aggregate figures over a role-scoped ticket set.

    Distributions only contain values that are actually present.
    """
    total_tickets: int
    open_tickets: int
    pending_tickets: int
    resolved_tickets: int
    closed_tickets: int
    avg_resolution_time: int
    sla_compliance_rate: int
    sla_compliant_tickets: int
    priority_stats: Dict[str, int]
    category_stats: Dict[str, int]
    status_stats: Dict[str, int]
    recent_tickets: int
    sla_status: Dict[str, int]
    generated_at: datetime
