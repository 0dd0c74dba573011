"""
Ticket Access Policy
====================

Role-based visibility and mutability rules.

Role is the only authorization axis:
- admin: every ticket, every operation, unrestricted reporting
- agent: tickets assigned to them; reporting over their own assignments
- user: tickets they filed; no reporting

Listings never evaluate tickets one by one. They receive a TicketScope that
is pushed into the store query, so tickets outside the scope are never
loaded for the caller.
"""

from dataclasses import dataclass
from enum import Enum

from helpdesk.core import AccessDeniedException
from helpdesk.tickets.domain.entities import Principal, Ticket
from helpdesk.tickets.domain.value_objects import TicketScope


class Operation(str, Enum):
    """Operations subject to authorization."""
    CREATE = "create"
    LIST = "list"
    READ = "read"
    UPDATE = "update"
    REASSIGN = "reassign"
    COMMENT = "comment"
    STATS = "stats"


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an authorization check."""
    allowed: bool
    reason: str = ""

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(False, reason)


class AccessPolicy:
    """
    Stateless access-control engine.

    authorize() answers single-ticket questions; scope_filter() produces the
    predicate for collection reads (listing and reporting).
    """

    @staticmethod
    def authorize(
        principal: Principal,
        ticket: Ticket,
        operation: Operation
    ) -> AccessDecision:
        """Decide whether principal may perform operation on ticket."""
        if principal.is_admin:
            return AccessDecision.allow()

        if principal.is_user:
            if operation == Operation.REASSIGN:
                return AccessDecision.deny("Users cannot reassign tickets")
            if ticket.created_by != principal.id:
                return AccessDecision.deny("Access denied")
            return AccessDecision.allow()

        if principal.is_agent:
            # Unassigned tickets are never implicitly visible to agents
            if ticket.assigned_to is None or ticket.assigned_to != principal.id:
                return AccessDecision.deny("Access denied. This ticket is not assigned to you.")
            return AccessDecision.allow()

        return AccessDecision.deny(f"Unknown role '{principal.role}'")

    @classmethod
    def ensure(
        cls,
        principal: Principal,
        ticket: Ticket,
        operation: Operation
    ) -> None:
        """Raise AccessDeniedException unless authorize() allows."""
        decision = cls.authorize(principal, ticket, operation)
        if not decision.allowed:
            raise AccessDeniedException(
                decision.reason,
                principal_id=principal.id,
                resource_id=ticket.id,
                details={"operation": operation.value, "role": principal.role.value}
            )

    @staticmethod
    def scope_filter(principal: Principal, operation: Operation) -> TicketScope:
        """
        Build the query predicate for a collection operation.

        Raises:
            AccessDeniedException: if the role may not perform the operation
                at all (users requesting stats).
        """
        if operation == Operation.STATS and principal.is_user:
            raise AccessDeniedException(
                "Reporting is restricted to agents and administrators",
                principal_id=principal.id,
                details={"operation": operation.value, "role": principal.role.value}
            )

        if principal.is_admin:
            return TicketScope()
        if principal.is_agent:
            return TicketScope(assigned_to=principal.id)
        if principal.is_user:
            return TicketScope(created_by=principal.id)

        raise AccessDeniedException(
            f"Unknown role '{principal.role}'",
            principal_id=principal.id
        )
