"""
Shared Kernel Module
====================

Shared infrastructure used by the ticket module and the HTTP application:
structured logging, request middleware and principal resolution.

DO NOT add ticket business logic to the shared kernel.
"""

__version__ = "1.0.0"
