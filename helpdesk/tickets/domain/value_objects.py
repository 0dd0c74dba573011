"""
Ticket Value Objects
====================

Immutable value objects for the ticket domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from helpdesk.config import SLAStatus, TicketStatus, FINISHED_STATUSES


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class SLAPolicy:
    """
    SLA windows applied to every ticket.

    resolution_window: time from creation until the deadline
    warning_window: remaining time under which a live ticket is flagged
    """
    resolution_window: timedelta = timedelta(hours=24)
    warning_window: timedelta = timedelta(hours=2)

    @classmethod
    def from_settings(cls, settings) -> "SLAPolicy":
        return cls(
            resolution_window=timedelta(hours=settings.sla_resolution_hours),
            warning_window=timedelta(minutes=settings.sla_warning_minutes),
        )


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class - all SLA arithmetic in one place.
    """

    @staticmethod
    def calculate_deadline(created_at: datetime, policy: SLAPolicy) -> datetime:
        """Deadline is fixed once, at creation."""
        return created_at + policy.resolution_window

    @staticmethod
    def calculate_status(
        status: TicketStatus,
        deadline: datetime,
        current_time: datetime,
        policy: SLAPolicy
    ) -> SLAStatus:
        """
        Classify a ticket against its deadline.

        Args:
            status: Current ticket status
            deadline: The ticket's SLA deadline
            current_time: Evaluation time
            policy: SLA windows

        Returns:
            SLAStatus: completed, breached, warning or normal
        """
        if status in FINISHED_STATUSES:
            return SLAStatus.COMPLETED

        remaining = deadline - current_time
        if remaining < timedelta(0):
            return SLAStatus.BREACHED
        elif remaining < policy.warning_window:
            return SLAStatus.WARNING
        else:
            return SLAStatus.NORMAL

    @staticmethod
    def resolution_minutes(created_at: datetime, resolved_at: datetime) -> int:
        """Whole minutes between creation and resolution."""
        return round_half_up((resolved_at - created_at).total_seconds() / 60)

    @staticmethod
    def met_deadline(resolved_at: datetime, deadline: datetime) -> bool:
        return resolved_at <= deadline


@dataclass(frozen=True)
class TicketScope:
    """
    Query predicate restricting which tickets an operation may touch.

    Every attribute left as None places no restriction. An empty scope
    matches every ticket.
    """
    created_by: Optional[str] = None
    assigned_to: Optional[str] = None

    def matches(self, ticket) -> bool:
        """Evaluate the predicate against an in-memory ticket."""
        if self.created_by is not None and ticket.created_by != self.created_by:
            return False
        if self.assigned_to is not None and ticket.assigned_to != self.assigned_to:
            return False
        return True
