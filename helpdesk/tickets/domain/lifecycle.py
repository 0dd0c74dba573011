"""
Ticket Lifecycle
================

Derives persisted and read-time fields from status transitions.

The engine is a pure function of (pre-state, requested change, now). It is
invoked before every store write, so it can be exercised without a store.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from helpdesk.config import SLAStatus, TicketStatus, TicketPriority, TicketCategory
from helpdesk.tickets.domain.entities import Comment, Principal, Ticket, TicketDraft
from helpdesk.tickets.domain.value_objects import SLACalculator, SLAPolicy


class LifecycleEngine:
    """Applies lifecycle rules for creation, updates and comments."""

    def __init__(self, policy: Optional[SLAPolicy] = None):
        self._policy = policy or SLAPolicy()

    @property
    def policy(self) -> SLAPolicy:
        return self._policy

    def new_ticket(
        self,
        principal: Principal,
        title: str,
        description: str,
        priority: TicketPriority,
        category: TicketCategory,
        now: datetime
    ) -> TicketDraft:
        """Every ticket starts open with a deadline fixed from its creation time."""
        return TicketDraft(
            title=title,
            description=description,
            priority=priority,
            category=category,
            created_by=principal.id,
            status=TicketStatus.OPEN,
            sla_deadline=SLACalculator.calculate_deadline(now, self._policy),
            created_at=now,
        )

    def apply_update(
        self,
        ticket: Ticket,
        changes: Dict[str, Any],
        now: datetime
    ) -> Dict[str, Any]:
        """
        Compute the full set of column changes for an update.

        Args:
            ticket: The ticket as read immediately before the write
            changes: Validated caller-requested changes
            now: Time of the update

        Returns:
            Changes to persist, including derived resolution fields
        """
        result = dict(changes)
        result["updated_at"] = now

        target_status = changes.get("status")
        if target_status == TicketStatus.RESOLVED and ticket.status != TicketStatus.RESOLVED:
            # First resolution only; a previously computed time is kept
            if not ticket.has_been_resolved:
                result["resolved_at"] = now
                result["resolution_time"] = SLACalculator.resolution_minutes(
                    ticket.created_at, now
                )

        return result

    @staticmethod
    def write_guard(persisted_changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Stored values the write in persisted_changes was derived from.

        A first resolution is only valid while the stored ticket is still
        unresolved; other writes carry no precondition.
        """
        if "resolved_at" in persisted_changes:
            return {"resolved_at": None}
        return None

    def sla_status(self, ticket: Ticket, now: datetime) -> SLAStatus:
        """Read-time SLA classification; never stored."""
        return SLACalculator.calculate_status(
            ticket.status, ticket.sla_deadline, now, self._policy
        )

    @staticmethod
    def new_comment(
        principal: Principal,
        text: str,
        is_internal: bool,
        now: datetime
    ) -> Comment:
        return Comment(
            id=str(uuid4()),
            author=principal.id,
            text=text,
            is_internal=is_internal,
            created_at=now,
        )
