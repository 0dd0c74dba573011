"""
Ticket Interfaces Layer
=======================

Interface adapters (controllers) for the ticket module.

This is the outermost layer - handles HTTP requests/responses and
delegates to the ticket service.
"""

from helpdesk.tickets.interfaces.controllers import router as tickets_router, get_ticket_service

__all__ = ["tickets_router", "get_ticket_service"]
