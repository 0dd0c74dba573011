from __future__ import annotations

from datetime import timedelta

from conftest import T0
from helpdesk.config import TicketCategory, TicketPriority, TicketStatus
from helpdesk.tickets.domain import ReportingEngine, Ticket

_counter = iter(range(1000))


def _ticket(
    status: TicketStatus = TicketStatus.OPEN,
    created_at=T0,
    resolved_after: timedelta | None = None,
    priority: TicketPriority = TicketPriority.MEDIUM,
    category: TicketCategory = TicketCategory.TECHNICAL,
) -> Ticket:
    resolved_at = created_at + resolved_after if resolved_after is not None else None
    resolution_time = int(resolved_after.total_seconds() // 60) if resolved_after is not None else None
    return Ticket(
        id=f"t-{next(_counter)}",
        title="Ticket",
        description="Body",
        status=status,
        priority=priority,
        category=category,
        created_by="user-u",
        assigned_to="agent-g",
        sla_deadline=created_at + timedelta(hours=24),
        created_at=created_at,
        updated_at=resolved_at or created_at,
        resolved_at=resolved_at,
        resolution_time=resolution_time,
    )


def test_empty_listing_yields_zeroes() -> None:
    report = ReportingEngine().compute([], T0)

    assert report.total_tickets == 0
    assert report.avg_resolution_time == 0
    assert report.sla_compliance_rate == 0
    assert report.priority_stats == {}
    assert report.category_stats == {}
    assert report.sla_status == {"normal": 0, "warning": 0, "breached": 0}


def test_agent_dashboard_average() -> None:
    tickets = [
        _ticket(TicketStatus.RESOLVED, resolved_after=timedelta(minutes=30)),
        _ticket(),
        _ticket(),
    ]

    report = ReportingEngine().compute(tickets, T0 + timedelta(hours=1))

    assert report.total_tickets == 3
    assert report.open_tickets == 2
    assert report.resolved_tickets == 1
    assert report.avg_resolution_time == 30


def test_average_ignores_closed_and_zero_minute_tickets() -> None:
    tickets = [
        _ticket(TicketStatus.RESOLVED, resolved_after=timedelta(minutes=10)),
        _ticket(TicketStatus.RESOLVED, resolved_after=timedelta(minutes=21)),
        _ticket(TicketStatus.RESOLVED, resolved_after=timedelta(seconds=10)),
        _ticket(TicketStatus.CLOSED, resolved_after=timedelta(minutes=600)),
    ]

    report = ReportingEngine().compute(tickets, T0 + timedelta(days=2))

    # (10 + 21) / 2 = 15.5 rounds half up
    assert report.avg_resolution_time == 16


def test_compliance_counts_resolved_and_closed_tickets() -> None:
    tickets = [
        _ticket(TicketStatus.RESOLVED, resolved_after=timedelta(hours=2)),
        _ticket(TicketStatus.CLOSED, resolved_after=timedelta(hours=24)),
        _ticket(TicketStatus.RESOLVED, resolved_after=timedelta(hours=30)),
        # Closed without ever being resolved
        _ticket(TicketStatus.CLOSED),
        _ticket(TicketStatus.OPEN),
    ]

    report = ReportingEngine().compute(tickets, T0 + timedelta(days=3))

    assert report.sla_compliant_tickets == 2
    # 2 of 3 finished-with-resolution tickets met their deadline
    assert report.sla_compliance_rate == 67


def test_distributions_only_contain_present_values() -> None:
    tickets = [
        _ticket(priority=TicketPriority.HIGH, category=TicketCategory.BILLING),
        _ticket(priority=TicketPriority.HIGH, category=TicketCategory.FEATURE_REQUEST),
        _ticket(TicketStatus.PENDING, priority=TicketPriority.LOW, category=TicketCategory.BILLING),
    ]

    report = ReportingEngine().compute(tickets, T0)

    assert report.priority_stats == {"high": 2, "low": 1}
    assert report.category_stats == {"billing": 2, "feature-request": 1}
    assert report.status_stats == {"open": 2, "pending": 1}
    assert report.pending_tickets == 1


def test_recent_window_and_live_sla_breakdown() -> None:
    now = T0 + timedelta(days=10)
    tickets = [
        _ticket(created_at=now - timedelta(days=8)),            # old, breached
        _ticket(created_at=now - timedelta(hours=23)),          # warning
        _ticket(created_at=now - timedelta(hours=1)),           # normal
        _ticket(TicketStatus.CLOSED, created_at=now - timedelta(days=1)),
    ]

    report = ReportingEngine(recent_window=timedelta(days=7)).compute(tickets, now)

    assert report.recent_tickets == 3
    assert report.sla_status == {"normal": 1, "warning": 1, "breached": 1}
    assert report.generated_at == now
