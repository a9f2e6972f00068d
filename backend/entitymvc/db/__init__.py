"""Database Layer — declarative Base and the entity base mixin.

Invariants:
    - Every scaffolded entity inherits from EntityBase and Base
    - Tables are owned by the application, not by the scaffolding layer
"""
