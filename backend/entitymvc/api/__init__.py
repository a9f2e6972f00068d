"""API Layer — entity controllers, request dependencies and error handlers.

Invariants:
    - Routers registered explicitly in main.py (no auto-discovery)
    - Controllers negotiate JSON vs HTML; fixed routes return JSON

Design Decisions:
    - Thin controllers delegate to EntityDomainService
"""
