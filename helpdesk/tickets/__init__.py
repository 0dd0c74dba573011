"""
Tickets Module
==============

Bounded context for help-desk tickets.

Responsibilities:
- File tickets with a fixed SLA deadline
- Enforce role-based visibility (user / agent / admin)
- Derive resolution time and live SLA status from status transitions
- Append-only ticket discussion
- Role-scoped reporting
"""

__version__ = "1.0.0"
