"""
Ticket Application Services
===========================

Application services orchestrate the ticket engine and coordinate between
domain rules and the ticket store.

Following SOLID principles:
- Single Responsibility: access, lifecycle and reporting rules live in the
  domain layer; this service only sequences them around store calls
- Dependency Inversion: depend on the repository abstraction, not on a
  concrete database
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from helpdesk.config import TicketStatus, TicketPriority, TicketCategory, SLAStatus
from helpdesk.core import (
    AccessDeniedException,
    ConflictException,
    ResourceNotFoundException,
    ValidationException,
)
from helpdesk.shared.infrastructure.logging import get_logger, log_latency
from helpdesk.tickets.application.dto import (
    CommentCreateDTO,
    TicketCreateDTO,
    TicketUpdateDTO,
)
from helpdesk.tickets.domain import (
    AccessPolicy,
    Comment,
    LifecycleEngine,
    Operation,
    Principal,
    ReportingEngine,
    StatsReport,
    Ticket,
    TicketDraft,
    TicketScope,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


# ========== Repository Interface (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def create(self, draft: TicketDraft) -> Ticket:
        """Persist a new ticket and return it with its assigned id."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by id, None if it does not exist."""

    @abstractmethod
    async def find(
        self,
        scope: TicketScope,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Ticket]:
        """List tickets matching scope, newest first."""

    @abstractmethod
    async def find_page(
        self,
        scope: TicketScope,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> Tuple[List[Ticket], int]:
        """One page of tickets matching scope plus the scoped total, from one read."""

    @abstractmethod
    async def count(self, scope: TicketScope) -> int:
        """Count tickets matching scope."""

    @abstractmethod
    async def aggregate_counts_by(self, scope: TicketScope, field: str) -> Dict[str, int]:
        """Group tickets matching scope by field and count each group."""

    @abstractmethod
    async def update_by_id(
        self,
        ticket_id: str,
        changes: Dict[str, Any],
        expected_pre_state: Optional[Dict[str, Any]] = None
    ) -> Optional[Ticket]:
        """
        Atomically apply changes; None if the ticket does not exist.

        Raises:
            ConflictException: the ticket exists but no longer matches
                expected_pre_state
        """

    @abstractmethod
    async def append_comment(self, ticket_id: str, comment: Comment) -> Optional[Ticket]:
        """Atomically append a comment; None if the ticket does not exist."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _coerce(model_cls: Type[ModelT], data: Union[ModelT, Mapping[str, Any]], what: str) -> ModelT:
    """Validate caller input, reporting offending fields as a ValidationException."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        fields = sorted({
            ".".join(str(part) for part in error["loc"]) or "__root__"
            for error in e.errors()
        })
        raise ValidationException(
            f"Invalid {what}: check {', '.join(fields)}",
            fields=fields,
            details={"errors": [error["msg"] for error in e.errors()]}
        ) from e


# ========== Application Service ==========

class TicketService:
    """
    Entry point for every ticket operation.

    Each call performs its own store reads; nothing is cached between
    calls, so one instance can safely serve any number of requests.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        lifecycle: Optional[LifecycleEngine] = None,
        reporting: Optional[ReportingEngine] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self._ticket_repo = ticket_repository
        self._lifecycle = lifecycle or LifecycleEngine()
        self._reporting = reporting or ReportingEngine(self._lifecycle.policy)
        self._clock = clock

    def sla_status(self, ticket: Ticket) -> SLAStatus:
        """Live SLA classification of a ticket at the current time."""
        return self._lifecycle.sla_status(ticket, self._clock())

    async def create_ticket(
        self,
        principal: Principal,
        draft: Union[TicketCreateDTO, Mapping[str, Any]]
    ) -> Ticket:
        """
        File a new ticket on behalf of principal.

        Raises:
            ValidationException: missing or malformed title, description,
                category or priority
        """
        payload = _coerce(TicketCreateDTO, draft, "ticket")

        ticket_draft = self._lifecycle.new_ticket(
            principal,
            title=payload.title,
            description=payload.description,
            priority=TicketPriority(payload.priority),
            category=TicketCategory(payload.category),
            now=self._clock(),
        )
        ticket = await self._ticket_repo.create(ticket_draft)

        logger.info(
            "Ticket created",
            extra={"ticket_id": ticket.id, "principal_id": principal.id, "priority": ticket.priority.value}
        )
        return ticket

    async def list_tickets(
        self,
        principal: Principal,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> Tuple[List[Ticket], int]:
        """
        List the tickets principal may see, newest first.

        Returns:
            Tuple of (page of tickets, total visible tickets)
        """
        scope = AccessPolicy.scope_filter(principal, Operation.LIST)
        return await self._list_scoped(principal, scope, limit, offset)

    async def list_created(
        self,
        principal: Principal,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> Tuple[List[Ticket], int]:
        """Tickets filed by the calling user."""
        if not principal.is_user:
            raise AccessDeniedException(
                "Only users have a filed-tickets queue",
                principal_id=principal.id
            )
        scope = TicketScope(created_by=principal.id)
        return await self._list_scoped(principal, scope, limit, offset)

    async def list_assigned(
        self,
        principal: Principal,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> Tuple[List[Ticket], int]:
        """Tickets assigned to the calling agent."""
        if not principal.is_agent:
            raise AccessDeniedException(
                "Only agents have an assigned-tickets queue",
                principal_id=principal.id
            )
        scope = TicketScope(assigned_to=principal.id)
        return await self._list_scoped(principal, scope, limit, offset)

    async def _list_scoped(
        self,
        principal: Principal,
        scope: TicketScope,
        limit: Optional[int],
        offset: int
    ) -> Tuple[List[Ticket], int]:
        tickets, total = await self._ticket_repo.find_page(scope, limit=limit, offset=offset)

        logger.info(
            "Tickets listed",
            extra={
                "principal_id": principal.id,
                "role": principal.role.value,
                "returned": len(tickets),
                "total": total,
            }
        )
        return tickets, total

    async def get_ticket(self, principal: Principal, ticket_id: str) -> Ticket:
        """
        Fetch a single ticket.

        Raises:
            ResourceNotFoundException: no such ticket, for every role
            AccessDeniedException: ticket exists but is not visible to principal
        """
        ticket = await self._load(ticket_id)
        self._authorize(principal, ticket, Operation.READ)
        return ticket

    async def update_ticket(
        self,
        principal: Principal,
        ticket_id: str,
        patch: Union[TicketUpdateDTO, Mapping[str, Any]]
    ) -> Ticket:
        """
        Apply a partial update through the lifecycle engine.

        Resolution fields are derived from the record read immediately
        before the write and persisted in the same statement as the
        requested changes. That statement only matches while the stored
        ticket still has no resolution, so a write derived from a stale
        read never replaces a first resolution recorded in between.

        Raises:
            ConflictException: the ticket was resolved after it was read
        """
        ticket = await self._load(ticket_id)
        self._authorize(principal, ticket, Operation.UPDATE)

        payload = _coerce(TicketUpdateDTO, patch, "ticket update")
        changes = self._changes_from(payload)

        if "assigned_to" in changes:
            self._authorize(principal, ticket, Operation.REASSIGN)

        now = self._clock()
        persisted_changes = self._lifecycle.apply_update(ticket, changes, now)
        expected_pre_state = self._lifecycle.write_guard(persisted_changes)

        try:
            updated = await self._ticket_repo.update_by_id(
                ticket.id, persisted_changes, expected_pre_state=expected_pre_state
            )
        except ConflictException:
            logger.warning(
                "Ticket update conflict",
                extra={"ticket_id": ticket.id, "principal_id": principal.id, "fields": sorted(changes)}
            )
            raise
        if updated is None:
            raise ResourceNotFoundException("Ticket", ticket_id)

        logger.info(
            "Ticket updated",
            extra={
                "ticket_id": updated.id,
                "principal_id": principal.id,
                "fields": sorted(changes),
                "status": updated.status.value,
            }
        )
        return updated

    async def add_comment(
        self,
        principal: Principal,
        ticket_id: str,
        text: Optional[str],
        is_internal: bool = False
    ) -> Ticket:
        """
        Append a comment to a ticket's discussion.

        Never changes status or resolution fields.
        """
        ticket = await self._load(ticket_id)
        self._authorize(principal, ticket, Operation.COMMENT)

        payload = _coerce(
            CommentCreateDTO,
            {"text": text, "is_internal": is_internal},
            "comment"
        )
        comment = self._lifecycle.new_comment(
            principal, payload.text, payload.is_internal, self._clock()
        )

        updated = await self._ticket_repo.append_comment(ticket.id, comment)
        if updated is None:
            raise ResourceNotFoundException("Ticket", ticket_id)

        logger.info(
            "Comment added",
            extra={"ticket_id": updated.id, "principal_id": principal.id, "is_internal": comment.is_internal}
        )
        return updated

    async def get_stats(self, principal: Principal) -> StatsReport:
        """
        Compute the reporting dashboard for principal's scope.

        Raises:
            AccessDeniedException: role user has no reporting access
        """
        try:
            scope = AccessPolicy.scope_filter(principal, Operation.STATS)
        except AccessDeniedException:
            logger.warning(
                "Stats access denied",
                extra={"principal_id": principal.id, "role": principal.role.value}
            )
            raise

        with log_latency(logger, "ticket_stats", principal_id=principal.id, role=principal.role.value):
            tickets = await self._ticket_repo.find(scope)
            report = self._reporting.compute(tickets, self._clock())

        return report

    # ========== Helpers ==========

    async def _load(self, ticket_id: str) -> Ticket:
        ticket = await self._ticket_repo.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    @staticmethod
    def _authorize(principal: Principal, ticket: Ticket, operation: Operation) -> None:
        try:
            AccessPolicy.ensure(principal, ticket, operation)
        except AccessDeniedException:
            logger.warning(
                "Ticket access denied",
                extra={
                    "ticket_id": ticket.id,
                    "principal_id": principal.id,
                    "role": principal.role.value,
                    "operation": operation.value,
                }
            )
            raise

    @staticmethod
    def _changes_from(payload: TicketUpdateDTO) -> Dict[str, Any]:
        """Convert the fields the caller actually sent into domain values."""
        changes = payload.model_dump(exclude_unset=True)
        if "status" in changes:
            changes["status"] = TicketStatus(changes["status"])
        if "priority" in changes:
            changes["priority"] = TicketPriority(changes["priority"])
        if "category" in changes:
            changes["category"] = TicketCategory(changes["category"])
        return changes
