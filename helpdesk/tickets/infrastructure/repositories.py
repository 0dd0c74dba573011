"""
Ticket Infrastructure Repositories
==================================

Concrete implementation of the ticket repository using SQLAlchemy.

Every public method runs in its own short transaction opened from the
shared session factory, so each store call is atomic on its own.
"""

from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from helpdesk.config import TicketStatus, TicketPriority, TicketCategory
from helpdesk.core import ConflictException, RepositoryException
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.application import ITicketRepository
from helpdesk.tickets.domain import Comment, Ticket, TicketDraft, TicketScope
from helpdesk.tickets.infrastructure.models import CommentModel, TicketModel

logger = get_logger(__name__)

GROUPABLE_FIELDS = ("status", "priority", "category", "created_by", "assigned_to")


def _parse_id(ticket_id: str) -> Optional[UUID]:
    try:
        return UUID(str(ticket_id))
    except ValueError:
        return None


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Handles persistence of Ticket entities using async SQLAlchemy.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error(
                "Ticket store failure",
                extra={"operation": operation, "error": str(e)}
            )
            raise RepositoryException(
                f"Ticket store failure during {operation}",
                details={"operation": operation}
            ) from e

    async def create(self, draft: TicketDraft) -> Ticket:
        """Create new ticket."""
        model = TicketModel(
            id=uuid4(),
            title=draft.title,
            description=draft.description,
            status=draft.status.value,
            priority=draft.priority.value,
            category=draft.category.value,
            created_by=draft.created_by,
            assigned_to=None,
            sla_deadline=draft.sla_deadline,
            resolved_at=None,
            resolution_time=None,
            created_at=draft.created_at,
            updated_at=draft.created_at,
            comments=[],
        )

        async with self._transaction("create") as session:
            session.add(model)

        return self._to_domain(model)

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by id."""
        ticket_uuid = _parse_id(ticket_id)
        if ticket_uuid is None:
            return None

        async with self._transaction("get_by_id") as session:
            model = await session.get(TicketModel, ticket_uuid)
            return self._to_domain(model) if model else None

    async def find(
        self,
        scope: TicketScope,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Ticket]:
        """List tickets matching scope, newest first."""
        stmt = self._apply_scope(select(TicketModel), scope)

        # Order by created_at descending
        stmt = stmt.order_by(TicketModel.created_at.desc(), TicketModel.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)

        async with self._transaction("find") as session:
            result = await session.execute(stmt)
            return [self._to_domain(model) for model in result.scalars().all()]

    async def find_page(
        self,
        scope: TicketScope,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> Tuple[List[Ticket], int]:
        """One page of tickets plus the scoped total, read by the same statement."""
        total_column = func.count().over().label("total_count")
        stmt = self._apply_scope(select(TicketModel, total_column), scope)
        stmt = stmt.order_by(TicketModel.created_at.desc(), TicketModel.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)

        async with self._transaction("find_page") as session:
            rows = (await session.execute(stmt)).all()
            if rows:
                return [self._to_domain(model) for model, _ in rows], int(rows[0].total_count)

            # Offset past the end: the window yields no row to read the total from
            count_stmt = self._apply_scope(select(func.count()).select_from(TicketModel), scope)
            total = (await session.execute(count_stmt)).scalar_one()
            return [], int(total)

    async def count(self, scope: TicketScope) -> int:
        """Count tickets matching scope."""
        stmt = self._apply_scope(select(func.count()).select_from(TicketModel), scope)

        async with self._transaction("count") as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def aggregate_counts_by(self, scope: TicketScope, field: str) -> Dict[str, int]:
        """Group tickets matching scope by field and count each group."""
        if field not in GROUPABLE_FIELDS:
            raise ValueError(f"Cannot group tickets by '{field}'")

        column = getattr(TicketModel, field)
        stmt = self._apply_scope(select(column, func.count()).select_from(TicketModel), scope)
        stmt = stmt.group_by(column)

        async with self._transaction("aggregate_counts_by") as session:
            result = await session.execute(stmt)
            return {value: int(count) for value, count in result.all()}

    async def update_by_id(
        self,
        ticket_id: str,
        changes: Dict[str, Any],
        expected_pre_state: Optional[Dict[str, Any]] = None
    ) -> Optional[Ticket]:
        """
        Apply changes in a single UPDATE statement.

        expected_pre_state columns are added to the WHERE clause; if the row
        exists but no longer matches them, nothing is written and
        ConflictException is raised.
        """
        ticket_uuid = _parse_id(ticket_id)
        if ticket_uuid is None:
            return None

        values = {key: self._column_value(value) for key, value in changes.items()}
        stmt = update(TicketModel).where(TicketModel.id == ticket_uuid)
        for key, expected in (expected_pre_state or {}).items():
            column = getattr(TicketModel, key)
            if expected is None:
                stmt = stmt.where(column.is_(None))
            else:
                stmt = stmt.where(column == self._column_value(expected))
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        async with self._transaction("update_by_id") as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                if expected_pre_state and await session.get(TicketModel, ticket_uuid) is not None:
                    raise ConflictException(
                        "Ticket",
                        ticket_id,
                        details={"expected": sorted(expected_pre_state)}
                    )
                return None
            model = await session.get(TicketModel, ticket_uuid, populate_existing=True)
            return self._to_domain(model)

    async def append_comment(self, ticket_id: str, comment: Comment) -> Optional[Ticket]:
        """Insert one comment row and bump the ticket's updated_at."""
        ticket_uuid = _parse_id(ticket_id)
        if ticket_uuid is None:
            return None

        touch = (
            update(TicketModel)
            .where(TicketModel.id == ticket_uuid)
            .values(updated_at=comment.created_at)
            .execution_options(synchronize_session=False)
        )

        async with self._transaction("append_comment") as session:
            result = await session.execute(touch)
            if result.rowcount == 0:
                return None

            session.add(CommentModel(
                id=UUID(comment.id),
                ticket_id=ticket_uuid,
                author=comment.author,
                text=comment.text,
                is_internal=comment.is_internal,
                created_at=comment.created_at,
            ))
            await session.flush()

            model = await session.get(TicketModel, ticket_uuid, populate_existing=True)
            return self._to_domain(model)

    # ========== Mapping ==========

    @staticmethod
    def _apply_scope(stmt, scope: TicketScope):
        if scope.created_by is not None:
            stmt = stmt.where(TicketModel.created_by == scope.created_by)
        if scope.assigned_to is not None:
            stmt = stmt.where(TicketModel.assigned_to == scope.assigned_to)
        return stmt

    @staticmethod
    def _column_value(value: Any) -> Any:
        return value.value if isinstance(value, Enum) else value

    @staticmethod
    def _to_domain(model: TicketModel) -> Ticket:
        return Ticket(
            id=str(model.id),
            title=model.title,
            description=model.description,
            status=TicketStatus(model.status),
            priority=TicketPriority(model.priority),
            category=TicketCategory(model.category),
            created_by=model.created_by,
            assigned_to=model.assigned_to,
            sla_deadline=model.sla_deadline,
            resolved_at=model.resolved_at,
            resolution_time=model.resolution_time,
            created_at=model.created_at,
            updated_at=model.updated_at,
            comments=[
                Comment(
                    id=str(c.id),
                    author=c.author,
                    text=c.text,
                    is_internal=c.is_internal,
                    created_at=c.created_at,
                )
                for c in model.comments
            ],
        )
