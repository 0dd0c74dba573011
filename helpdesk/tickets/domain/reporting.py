"""
Ticket Reporting
================

Aggregate statistics over a scoped ticket set.

Every figure in a report is derived from the same in-memory listing, so a
ticket that changes while the report is being built is counted
consistently in all of them.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Optional

from helpdesk.config import SLAStatus, TicketStatus, FINISHED_STATUSES
from helpdesk.tickets.domain.entities import StatsReport, Ticket
from helpdesk.tickets.domain.value_objects import SLACalculator, SLAPolicy, round_half_up


class ReportingEngine:
    """Computes a StatsReport from one listing pass."""

    def __init__(
        self,
        policy: Optional[SLAPolicy] = None,
        recent_window: timedelta = timedelta(days=7)
    ):
        self._policy = policy or SLAPolicy()
        self._recent_window = recent_window

    def compute(self, tickets: Iterable[Ticket], now: datetime) -> StatsReport:
        tickets = list(tickets)

        status_counts = Counter(t.status.value for t in tickets)
        priority_counts = Counter(t.priority.value for t in tickets)
        category_counts = Counter(t.category.value for t in tickets)

        # Average over resolved tickets with a positive resolution time
        durations = [
            t.resolution_time for t in tickets
            if t.status == TicketStatus.RESOLVED
            and t.resolution_time is not None
            and t.resolution_time > 0
        ]
        avg_resolution = round_half_up(sum(durations) / len(durations)) if durations else 0

        finished = [
            t for t in tickets
            if t.status in FINISHED_STATUSES and t.resolved_at is not None
        ]
        compliant = sum(
            1 for t in finished
            if SLACalculator.met_deadline(t.resolved_at, t.sla_deadline)
        )
        compliance_rate = round_half_up(compliant / len(finished) * 100) if finished else 0

        since = now - self._recent_window
        recent = sum(1 for t in tickets if t.created_at >= since)

        live_sla = {
            SLAStatus.NORMAL.value: 0,
            SLAStatus.WARNING.value: 0,
            SLAStatus.BREACHED.value: 0,
        }
        for ticket in tickets:
            if ticket.is_finished:
                continue
            state = SLACalculator.calculate_status(
                ticket.status, ticket.sla_deadline, now, self._policy
            )
            live_sla[state.value] += 1

        return StatsReport(
            total_tickets=len(tickets),
            open_tickets=status_counts.get(TicketStatus.OPEN.value, 0),
            pending_tickets=status_counts.get(TicketStatus.PENDING.value, 0),
            resolved_tickets=status_counts.get(TicketStatus.RESOLVED.value, 0),
            closed_tickets=status_counts.get(TicketStatus.CLOSED.value, 0),
            avg_resolution_time=avg_resolution,
            sla_compliance_rate=compliance_rate,
            sla_compliant_tickets=compliant,
            priority_stats=dict(priority_counts),
            category_stats=dict(category_counts),
            status_stats=dict(status_counts),
            recent_tickets=recent,
            sla_status=live_sla,
            generated_at=now,
        )
