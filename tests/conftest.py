from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from copy import deepcopy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

import pytest

from helpdesk.config import Role
from helpdesk.core import ConflictException
from helpdesk.tickets.application import ITicketRepository, TicketService
from helpdesk.tickets.domain import Comment, Principal, Ticket, TicketDraft, TicketScope

T0 = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
TEST_TOKEN_SECRET = "change-me"


class FakeClock:
    """Controllable clock injected into the ticket service."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryTicketRepository(ITicketRepository):
    """Ticket store fake; hands out copies so callers never share state."""

    def __init__(self) -> None:
        self.tickets: Dict[str, Ticket] = {}
        self.calls: List[str] = []

    async def create(self, draft: TicketDraft) -> Ticket:
        self.calls.append("create")
        ticket = Ticket(
            id=str(uuid4()),
            title=draft.title,
            description=draft.description,
            status=draft.status,
            priority=draft.priority,
            category=draft.category,
            created_by=draft.created_by,
            sla_deadline=draft.sla_deadline,
            created_at=draft.created_at,
            updated_at=draft.created_at,
        )
        self.tickets[ticket.id] = ticket
        return deepcopy(ticket)

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        self.calls.append("get_by_id")
        ticket = self.tickets.get(ticket_id)
        return deepcopy(ticket) if ticket else None

    async def find(
        self,
        scope: TicketScope,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Ticket]:
        self.calls.append("find")
        matching = sorted(
            (t for t in self.tickets.values() if scope.matches(t)),
            key=lambda t: (t.created_at, t.id),
            reverse=True,
        )
        end = None if limit is None else offset + limit
        return [deepcopy(t) for t in matching[offset:end]]

    async def find_page(
        self,
        scope: TicketScope,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> Tuple[List[Ticket], int]:
        self.calls.append("find_page")
        matching = sorted(
            (t for t in self.tickets.values() if scope.matches(t)),
            key=lambda t: (t.created_at, t.id),
            reverse=True,
        )
        end = None if limit is None else offset + limit
        return [deepcopy(t) for t in matching[offset:end]], len(matching)

    async def count(self, scope: TicketScope) -> int:
        self.calls.append("count")
        return sum(1 for t in self.tickets.values() if scope.matches(t))

    async def aggregate_counts_by(self, scope: TicketScope, field: str) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for ticket in self.tickets.values():
            if scope.matches(ticket):
                value = getattr(ticket, field)
                key = getattr(value, "value", value)
                counts[key] = counts.get(key, 0) + 1
        return counts

    async def update_by_id(
        self,
        ticket_id: str,
        changes: Dict[str, Any],
        expected_pre_state: Optional[Dict[str, Any]] = None
    ) -> Optional[Ticket]:
        self.calls.append("update_by_id")
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            return None
        for key, expected in (expected_pre_state or {}).items():
            if getattr(ticket, key) != expected:
                raise ConflictException("Ticket", ticket_id, details={"expected": sorted(expected_pre_state)})
        for key, value in changes.items():
            setattr(ticket, key, value)
        return deepcopy(ticket)

    async def append_comment(self, ticket_id: str, comment: Comment) -> Optional[Ticket]:
        self.calls.append("append_comment")
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            return None
        ticket.comments.append(deepcopy(comment))
        ticket.updated_at = comment.created_at
        return deepcopy(ticket)


def sign_token(header: Any, payload: Any, secret: str = TEST_TOKEN_SECRET) -> str:
    """Sign arbitrary JSON header and payload segments, shaped or not."""
    def encode(data: Any) -> str:
        raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    header_segment = encode(header)
    payload_segment = encode(payload)
    signing_input = f"{header_segment}.{payload_segment}".encode("ascii")
    signature = hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return f"{header_segment}.{payload_segment}.{base64.urlsafe_b64encode(signature).rstrip(b'=').decode('ascii')}"


def make_token(
    sub: str,
    role: str,
    secret: str = TEST_TOKEN_SECRET,
    expires_in: int = 3600,
    alg: str = "HS256"
) -> str:
    return sign_token(
        {"alg": alg, "typ": "JWT"},
        {"sub": sub, "role": role, "exp": int(time.time()) + expires_in},
        secret,
    )


def auth_header(sub: str, role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub, role)}"}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> InMemoryTicketRepository:
    return InMemoryTicketRepository()


@pytest.fixture
def service(repository: InMemoryTicketRepository, clock: FakeClock) -> TicketService:
    return TicketService(repository, clock=clock)


@pytest.fixture
def user_u() -> Principal:
    return Principal(id="user-u", role=Role.USER)


@pytest.fixture
def user_v() -> Principal:
    return Principal(id="user-v", role=Role.USER)


@pytest.fixture
def agent_g() -> Principal:
    return Principal(id="agent-g", role=Role.AGENT)


@pytest.fixture
def agent_g2() -> Principal:
    return Principal(id="agent-g2", role=Role.AGENT)


@pytest.fixture
def admin() -> Principal:
    return Principal(id="admin-1", role=Role.ADMIN)


@pytest.fixture
def ticket_payload() -> dict[str, str]:
    return {
        "title": "Cannot log in",
        "description": "Password reset email never arrives.",
        "priority": "high",
        "category": "bug",
    }
