"""Services Layer — entity domain service and request value binding.

Invariants:
    - Services own queries, paging and persistence; controllers only shape responses
    - Binding failures are reported as validation messages, never raised to the caller

Design Decisions:
    - One generic service per entity type, overridable per controller
"""
