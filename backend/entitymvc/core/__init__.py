"""Core Layer — entity metadata, authorization rules and view models. No IO, no async.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or rendering/
    - Metadata is derived from SQLAlchemy mappings once per type and cached

Design Decisions:
    - Declarative options live on the mapped classes (__entity__, column info)
"""
