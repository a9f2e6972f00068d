"""Rendering — Jinja2 view helpers and metadata-driven JSON converters.

Invariants:
    - Rendering never queries the database; it only reads loaded view models
"""
