"""Member ORM — a forum user.

Invariants:
    - username is unique, 3-50 chars (length enforced by binding)
    - password stored as a salted PBKDF2 hash, never as posted
    - password never serialized to JSON (PASSWORD data type)
    - only "admin" may create, edit or remove members
    - removing a member removes the member's threads and posts
"""

import hashlib
import hmac
import secrets

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from entitymvc.core.metadata import CustomDataType, entity_property
from entitymvc.db.base import Base
from entitymvc.db.entity import EntityBase

PASSWORD_SCHEME = "pbkdf2_sha256"
PASSWORD_ITERATIONS = 260_000


def hash_password(password: str, salt: str | None = None) -> str:
    """'pbkdf2_sha256$<iterations>$<salt>$<hex digest>' for a plain password."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), PASSWORD_ITERATIONS,
    ).hex()
    return f"{PASSWORD_SCHEME}${PASSWORD_ITERATIONS}${salt}${digest}"


def is_password_hash(value: str) -> bool:
    return value.startswith(f"{PASSWORD_SCHEME}$") and value.count("$") == 3


class Member(EntityBase, Base):
    __tablename__ = "members"
    __entity__ = {
        "display_property": "username",
        "sort_property": "username",
        "add_roles": ("admin",),
        "edit_roles": ("admin",),
        "remove_roles": ("admin",),
    }

    username: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True,
        info=entity_property(name="Username", searchable=True),
    )
    email: Mapped[str | None] = mapped_column(
        String(255), nullable=True,
        info=entity_property(name="Email", type=CustomDataType.EMAIL_ADDRESS),
    )
    password: Mapped[str] = mapped_column(
        String(255), nullable=False,
        info=entity_property(
            name="Password", type=CustomDataType.PASSWORD,
            hide_in_list=True, hide_in_detail=True,
        ),
    )

    threads: Mapped[list["Thread"]] = relationship(
        "Thread", back_populates="member", cascade="all, delete-orphan",
        info=entity_property(name="Threads"),
    )
    posts: Mapped[list["Post"]] = relationship(
        "Post", back_populates="member", cascade="all, delete-orphan",
        info=entity_property(name="Posts"),
    )

    @validates("password")
    def _hash_password(self, key: str, value: str | None) -> str | None:
        if value is None:
            return value
        return hash_password(value)

    def check_password(self, password: str) -> bool:
        if not self.password or not is_password_hash(self.password):
            return False
        _, _, salt, _ = self.password.split("$")
        return hmac.compare_digest(hash_password(password, salt), self.password)
