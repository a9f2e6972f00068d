"""ORM Models — the sample forum domain served by the entity controllers.

Invariants:
    - All models inherit from EntityBase and Base (db/)
    - Forum and Member own threads and posts; deleting a thread deletes its replies,
      deleting a member deletes everything the member wrote

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs (ADR: standard SQLAlchemy pattern)
"""

from entitymvc.models.member import Member  # noqa: F401
from entitymvc.models.forum import Forum  # noqa: F401
from entitymvc.models.thread import Thread, ThreadStatus  # noqa: F401
from entitymvc.models.post import Post  # noqa: F401
