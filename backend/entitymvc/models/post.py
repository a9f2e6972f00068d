"""Post ORM — a reply in a thread."""

import uuid

from sqlalchemy import ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from entitymvc.core.metadata import CustomDataType, entity_property
from entitymvc.db.base import Base
from entitymvc.db.entity import EntityBase


class Post(EntityBase, Base):
    __tablename__ = "posts"
    __entity__ = {"sort_descending": False}

    content: Mapped[str] = mapped_column(
        Text, nullable=False,
        info=entity_property(name="Content", type=CustomDataType.HTML),
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("members.id"), nullable=False,
    )
    thread_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("threads.id", ondelete="CASCADE"), nullable=False,
    )

    member: Mapped["Member"] = relationship(
        "Member", back_populates="posts",
        info=entity_property(name="Member"),
    )
    thread: Mapped["Thread"] = relationship(
        "Thread", back_populates="replies",
        info=entity_property(name="Thread", searchable=True),
    )
