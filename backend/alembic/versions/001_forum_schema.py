"""Forum schema — members, forums, threads, posts.

Revision ID: 001_forum
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_forum"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _entity_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("edited_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "members",
        *_entity_columns(),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("password", sa.String(255), nullable=False),
        sa.UniqueConstraint("username", name="uq_members_username"),
    )

    op.create_table(
        "forums",
        *_entity_columns(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
    )

    op.create_table(
        "threads",
        *_entity_columns(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("member_id", sa.Uuid, sa.ForeignKey("members.id"), nullable=False),
        sa.Column(
            "forum_id", sa.Uuid,
            sa.ForeignKey("forums.id", ondelete="CASCADE"), nullable=False,
        ),
    )
    op.create_index("ix_threads_forum_id", "threads", ["forum_id"])

    op.create_table(
        "posts",
        *_entity_columns(),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("member_id", sa.Uuid, sa.ForeignKey("members.id"), nullable=False),
        sa.Column(
            "thread_id", sa.Uuid,
            sa.ForeignKey("threads.id", ondelete="CASCADE"), nullable=False,
        ),
    )
    op.create_index("ix_posts_thread_id", "posts", ["thread_id"])


def downgrade() -> None:
    op.drop_index("ix_posts_thread_id", table_name="posts")
    op.drop_table("posts")
    op.drop_index("ix_threads_forum_id", table_name="threads")
    op.drop_table("threads")
    op.drop_table("forums")
    op.drop_table("members")
