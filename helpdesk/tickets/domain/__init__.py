"""
Ticket Domain Layer
===================

Domain layer for the help-desk ticket module.

Contains:
- Entities: Principal, Ticket, Comment, TicketDraft, StatsReport
- Value Objects: SLAPolicy, SLACalculator, TicketScope
- Engines: AccessPolicy, LifecycleEngine, ReportingEngine

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk.tickets.domain.entities import (
    Principal,
    Comment,
    Ticket,
    TicketDraft,
    StatsReport,
)
from helpdesk.tickets.domain.value_objects import (
    SLAPolicy,
    SLACalculator,
    TicketScope,
    round_half_up,
)
from helpdesk.tickets.domain.access import AccessPolicy, AccessDecision, Operation
from helpdesk.tickets.domain.lifecycle import LifecycleEngine
from helpdesk.tickets.domain.reporting import ReportingEngine

__all__ = [
    # Entities
    "Principal",
    "Comment",
    "Ticket",
    "TicketDraft",
    "StatsReport",
    # Value Objects
    "SLAPolicy",
    "SLACalculator",
    "TicketScope",
    "round_half_up",
    # Engines
    "AccessPolicy",
    "AccessDecision",
    "Operation",
    "LifecycleEngine",
    "ReportingEngine",
]
