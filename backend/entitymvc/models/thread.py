"""Thread ORM — a discussion started by a member in a forum.

Invariants:
    - member and forum are required
    - replies are deleted with the thread
    - status labels are display names, values are what is stored
"""

import uuid
from enum import Enum

from sqlalchemy import Enum as SAEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from entitymvc.core.metadata import entity_property
from entitymvc.db.base import Base
from entitymvc.db.entity import EntityBase


class ThreadStatus(str, Enum):
    OPEN = "open"
    LOCKED = "locked"
    PINNED = "pinned"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    ThreadStatus.OPEN: "Open",
    ThreadStatus.LOCKED: "Locked",
    ThreadStatus.PINNED: "Pinned to top",
}


class Thread(EntityBase, Base):
    __tablename__ = "threads"
    __entity__ = {"display_property": "title", "allow_anonymous": True}

    title: Mapped[str] = mapped_column(
        String(200), nullable=False,
        info=entity_property(name="Title", searchable=True, order=-10),
    )
    status: Mapped[ThreadStatus] = mapped_column(
        SAEnum(ThreadStatus, native_enum=False, length=20,
               values_callable=lambda e: [m.value for m in e]),
        nullable=False, default=ThreadStatus.OPEN,
        info=entity_property(name="Status", searchable=True),
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("members.id"), nullable=False,
    )
    forum_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("forums.id", ondelete="CASCADE"), nullable=False,
    )

    member: Mapped["Member"] = relationship(
        "Member", back_populates="threads",
        info=entity_property(name="Member", searchable=True),
    )
    forum: Mapped["Forum"] = relationship(
        "Forum", back_populates="threads",
        info=entity_property(name="Forum", searchable=True),
    )
    replies: Mapped[list["Post"]] = relationship(
        "Post", back_populates="thread", cascade="all, delete-orphan",
        order_by="Post.created_at",
        info=entity_property(name="Replies"),
    )
