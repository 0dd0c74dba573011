"""
Shared API Layer
================

HTTP concerns shared by every router: middleware, exception handlers and
principal resolution.
"""
