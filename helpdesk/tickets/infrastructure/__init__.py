"""
Ticket Infrastructure Layer
===========================

Infrastructure implementations for the ticket module:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer
"""

from helpdesk.tickets.infrastructure.models import TicketModel, CommentModel
from helpdesk.tickets.infrastructure.repositories import SQLAlchemyTicketRepository

__all__ = [
    "TicketModel",
    "CommentModel",
    "SQLAlchemyTicketRepository",
]
