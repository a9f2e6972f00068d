"""Entity Base — identity and timestamps shared by every scaffolded entity.

Invariants:
    - id is a UUID primary key generated client-side (uuid4)
    - created_at set once on insert; edited_at stamped by the domain service on update
    - str(entity) is the entity's display text
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from entitymvc.core.metadata import entity_property, get_metadata


class EntityBase:
    """Mixin for declarative models: combine with Base (`class Thread(EntityBase, Base)`)."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
        info=entity_property(name="Index", hide_in_list=True, order=100),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        info=entity_property(name="Create Date", hide_in_edit=True, order=101),
    )
    edited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
        info=entity_property(
            name="Edit Date", hide_in_edit=True, hide_in_list=True, order=102,
        ),
    )

    def __str__(self) -> str:
        return get_metadata(type(self)).get_display_text(self)
