"""EntityMVC — generic CRUD scaffolding for SQLAlchemy entities on FastAPI.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
"""
