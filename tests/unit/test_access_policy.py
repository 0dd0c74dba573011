from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import T0
from helpdesk.config import Role, TicketCategory, TicketPriority, TicketStatus
from helpdesk.core import AccessDeniedException
from helpdesk.tickets.domain import AccessPolicy, Operation, Principal, Ticket, TicketScope


def _ticket(created_by: str = "user-u", assigned_to: str | None = None) -> Ticket:
    return Ticket(
        id="t-1",
        title="Printer jammed",
        description="Paper stuck in tray 2",
        status=TicketStatus.OPEN,
        priority=TicketPriority.LOW,
        category=TicketCategory.GENERAL,
        created_by=created_by,
        assigned_to=assigned_to,
        sla_deadline=T0 + timedelta(hours=24),
        created_at=T0,
        updated_at=T0,
    )


@pytest.mark.parametrize("operation", [Operation.READ, Operation.UPDATE, Operation.COMMENT, Operation.REASSIGN])
def test_admin_is_allowed_everything(operation: Operation) -> None:
    admin = Principal(id="admin-1", role=Role.ADMIN)

    assert AccessPolicy.authorize(admin, _ticket(), operation).allowed


def test_user_sees_only_tickets_they_created() -> None:
    owner = Principal(id="user-u", role=Role.USER)
    other = Principal(id="user-v", role=Role.USER)
    ticket = _ticket(created_by="user-u")

    assert AccessPolicy.authorize(owner, ticket, Operation.READ).allowed
    assert AccessPolicy.authorize(owner, ticket, Operation.COMMENT).allowed
    assert not AccessPolicy.authorize(other, ticket, Operation.READ).allowed


def test_user_cannot_reassign_even_own_ticket() -> None:
    owner = Principal(id="user-u", role=Role.USER)

    decision = AccessPolicy.authorize(owner, _ticket(created_by="user-u"), Operation.REASSIGN)

    assert not decision.allowed
    assert "reassign" in decision.reason


def test_agent_needs_assignment() -> None:
    agent = Principal(id="agent-g", role=Role.AGENT)

    assert AccessPolicy.authorize(agent, _ticket(assigned_to="agent-g"), Operation.UPDATE).allowed
    assert not AccessPolicy.authorize(agent, _ticket(assigned_to="agent-g2"), Operation.READ).allowed
    # Unassigned tickets are not visible to any agent
    assert not AccessPolicy.authorize(agent, _ticket(assigned_to=None), Operation.READ).allowed


def test_agent_does_not_see_tickets_they_filed_but_are_not_assigned() -> None:
    agent = Principal(id="agent-g", role=Role.AGENT)

    assert not AccessPolicy.authorize(agent, _ticket(created_by="agent-g"), Operation.READ).allowed


def test_ensure_raises_with_context() -> None:
    other = Principal(id="user-v", role=Role.USER)

    with pytest.raises(AccessDeniedException) as exc_info:
        AccessPolicy.ensure(other, _ticket(), Operation.READ)

    assert exc_info.value.principal_id == "user-v"
    assert exc_info.value.resource_id == "t-1"
    assert exc_info.value.details == {"operation": "read", "role": "user"}


def test_scope_filter_per_role() -> None:
    assert AccessPolicy.scope_filter(Principal("admin-1", Role.ADMIN), Operation.LIST) == TicketScope()
    assert AccessPolicy.scope_filter(Principal("agent-g", Role.AGENT), Operation.LIST) == TicketScope(assigned_to="agent-g")
    assert AccessPolicy.scope_filter(Principal("user-u", Role.USER), Operation.LIST) == TicketScope(created_by="user-u")
    assert AccessPolicy.scope_filter(Principal("agent-g", Role.AGENT), Operation.STATS) == TicketScope(assigned_to="agent-g")


def test_scope_filter_denies_stats_to_users() -> None:
    with pytest.raises(AccessDeniedException):
        AccessPolicy.scope_filter(Principal("user-u", Role.USER), Operation.STATS)


def test_scope_matches_agrees_with_authorize() -> None:
    agent = Principal(id="agent-g", role=Role.AGENT)
    scope = AccessPolicy.scope_filter(agent, Operation.LIST)
    tickets = [_ticket(assigned_to="agent-g"), _ticket(assigned_to="agent-g2"), _ticket()]

    for ticket in tickets:
        assert scope.matches(ticket) == AccessPolicy.authorize(agent, ticket, Operation.READ).allowed
