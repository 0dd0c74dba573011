"""
Help Desk Service
=================

Ticket lifecycle, access control and SLA reporting.
"""
