"""Forum ORM — a board grouping threads."""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from entitymvc.core.metadata import entity_property
from entitymvc.db.base import Base
from entitymvc.db.entity import EntityBase


class Forum(EntityBase, Base):
    __tablename__ = "forums"
    __entity__ = {
        "sort_property": "position",
        "sort_descending": False,
        "add_roles": ("admin",),
        "edit_roles": ("admin",),
        "remove_roles": ("admin",),
    }

    name: Mapped[str] = mapped_column(
        String(100), nullable=False,
        info=entity_property(name="Name", searchable=True),
    )
    description: Mapped[str | None] = mapped_column(
        Text, nullable=True,
        info=entity_property(name="Description", hide_in_list=True),
    )
    position: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
        info=entity_property(name="Position"),
    )

    threads: Mapped[list["Thread"]] = relationship(
        "Thread", back_populates="forum", cascade="all, delete-orphan",
        info=entity_property(name="Threads"),
    )
