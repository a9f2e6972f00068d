"""Entity Metadata — verifies reflection of mapped classes into property descriptors.

Tests cover:
    - Type inference from column types and declared overrides
    - Foreign keys hidden behind their relationships
    - Display/sort property resolution and fallbacks
    - Ordering, visibility sets and per-type caching
"""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import Boolean, Date, Float, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from entitymvc.core.metadata import (
    CustomDataType, PropertyMetadata, entity_property, get_metadata,
)
from entitymvc.core.security import ANONYMOUS, Authentication
from entitymvc.models import Forum, Member, Post, Thread, ThreadStatus


class _GadgetBase(DeclarativeBase):
    pass


class Gadget(_GadgetBase):
    __tablename__ = "gadgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    label: Mapped[str] = mapped_column(String(30), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=True)
    weight: Mapped[float] = mapped_column(Float, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    released: Mapped[date | None] = mapped_column(Date, nullable=True)


class BrokenGadget(_GadgetBase):
    __tablename__ = "broken_gadgets"
    __entity__ = {"display_property": "missing"}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)


# ─── Type inference ─────────────────────────────────────────────

def test_column_types_are_inferred():
    md = get_metadata(Gadget)
    assert md.get_property("label").type == CustomDataType.TEXT
    assert md.get_property("price").type == CustomDataType.CURRENCY
    assert md.get_property("weight").type == CustomDataType.NUMBER
    assert md.get_property("active").type == CustomDataType.BOOLEAN
    assert md.get_property("released").type == CustomDataType.DATE
    assert md.get_property("id").type == CustomDataType.INTEGER


def test_text_column_is_multiline():
    md = get_metadata(Forum)
    assert md.get_property("description").type == CustomDataType.MULTILINE_TEXT


def test_declared_type_overrides_inference():
    md = get_metadata(Member)
    assert md.get_property("password").type == CustomDataType.PASSWORD
    assert md.get_property("email").type == CustomDataType.EMAIL_ADDRESS
    assert get_metadata(Post).get_property("content").type == CustomDataType.HTML


def test_enum_column_carries_enum_type():
    status = get_metadata(Thread).get_property("status")
    assert status.type == CustomDataType.ENUM
    assert status.enum_type is ThreadStatus


def test_string_length_becomes_max_length():
    md = get_metadata(Thread)
    assert md.get_property("title").max_length == 200
    assert get_metadata(Forum).get_property("description").max_length is None


# ─── Required ───────────────────────────────────────────────────

def test_non_nullable_column_without_default_is_required():
    md = get_metadata(Thread)
    assert md.get_property("title").is_required


def test_column_with_default_is_not_required():
    assert not get_metadata(Thread).get_property("status").is_required
    assert not get_metadata(Forum).get_property("position").is_required


def test_nullable_column_is_not_required():
    assert not get_metadata(Member).get_property("email").is_required


# ─── Relationships ──────────────────────────────────────────────

def test_foreign_key_columns_are_hidden_behind_relationships():
    md = get_metadata(Thread)
    assert not md.has_property("member_id")
    assert not md.has_property("forum_id")
    assert md.has_property("member")


def test_many_to_one_is_entity_property():
    member = get_metadata(Thread).get_property("member")
    assert member.type == CustomDataType.ENTITY
    assert member.target_type is Member
    assert member.is_required
    assert member.is_searchable


def test_one_to_many_is_collection_hidden_in_list_and_edit():
    replies = get_metadata(Thread).get_property("replies")
    assert replies.type == CustomDataType.COLLECTION
    assert replies.target_type is Post
    assert replies.is_hidden_in_list
    assert replies.is_hidden_in_edit
    assert replies not in get_metadata(Thread).edit_properties


def test_relation_properties_lists_entities_and_collections():
    names = {p.clr_name for p in get_metadata(Thread).relation_properties}
    assert names == {"member", "forum", "replies"}


# ─── Key, display and sort ──────────────────────────────────────

def test_key_property_is_primary_key():
    md = get_metadata(Thread)
    assert md.key_property.clr_name == "id"
    assert md.key_property.is_key
    assert md.key_property.name == "Index"


def test_key_property_is_never_editable():
    md = get_metadata(Thread)
    assert md.key_property not in md.edit_properties


def test_declared_display_property():
    assert get_metadata(Member).display_property.clr_name == "username"


def test_display_property_falls_back_to_first_text_property():
    assert get_metadata(Gadget).display_property.clr_name == "label"
    assert get_metadata(Post).display_property.clr_name == "content"


def test_unknown_display_property_raises():
    with pytest.raises(ValueError, match="missing"):
        get_metadata(BrokenGadget)


def test_sort_defaults_to_created_at_descending():
    md = get_metadata(Thread)
    assert md.sort_property.clr_name == "created_at"
    assert md.sort_descending is True


def test_declared_sort_property_and_direction():
    md = get_metadata(Forum)
    assert md.sort_property.clr_name == "position"
    assert md.sort_descending is False


def test_sort_falls_back_to_key_without_created_at():
    md = get_metadata(Gadget)
    assert md.sort_property is md.key_property
    assert md.sort_descending is False


# ─── Ordering and visibility ────────────────────────────────────

def test_properties_ordered_by_order_then_declaration():
    names = [p.clr_name for p in get_metadata(Thread).properties]
    assert names[0] == "title"
    assert names[-3:] == ["id", "created_at", "edited_at"]


def test_visibility_sets():
    md = get_metadata(Member)
    view = {p.clr_name for p in md.view_properties}
    detail = {p.clr_name for p in md.detail_properties}
    edit = {p.clr_name for p in md.edit_properties}
    assert "password" not in view
    assert "password" not in detail
    assert "password" in edit
    assert "created_at" not in edit
    assert "id" not in view


def test_search_properties():
    names = {p.clr_name for p in get_metadata(Thread).search_properties}
    assert names == {"title", "status", "member", "forum"}


# ─── Lookups and caching ────────────────────────────────────────

def test_metadata_is_cached_per_type():
    assert get_metadata(Thread) is get_metadata(Thread)


def test_get_property_unknown_name_raises_key_error():
    with pytest.raises(KeyError):
        get_metadata(Thread).get_property("nope")


def test_display_text():
    md = get_metadata(Thread)
    assert md.get_display_text(Thread(title="Hello")) == "Hello"
    assert md.get_display_text(None) == ""


def test_entity_str_is_display_text():
    assert str(Member(username="alice")) == "alice"


def test_entity_name_defaults_to_class_name():
    assert get_metadata(Thread).name == "Thread"


def test_unknown_property_option_rejected():
    with pytest.raises(ValidationError):
        entity_property(hidden=True)


# ─── Template names ─────────────────────────────────────────────

def test_template_name_is_pascal_case():
    assert CustomDataType.MULTILINE_TEXT.template_name == "MultilineText"
    assert CustomDataType.DATE_TIME.template_name == "DateTime"
    assert CustomDataType.EMAIL_ADDRESS.template_name == "EmailAddress"
    assert CustomDataType.TEXT.template_name == "Text"


def test_other_type_uses_custom_type_name():
    prop = PropertyMetadata(
        clr_name="rating", name="Rating", type=CustomDataType.OTHER, custom_type="Stars",
    )
    assert prop.template_name == "Stars"


def test_property_roles():
    prop = PropertyMetadata(
        clr_name="notes", name="Notes", type=CustomDataType.TEXT,
        view_roles=("staff",), edit_roles=("admin",),
    )
    staff = Authentication(user_id="u1", roles=frozenset({"staff"}))
    assert not prop.is_viewable(ANONYMOUS)
    assert prop.is_viewable(staff)
    assert not prop.is_editable(staff)
    assert prop.is_editable(Authentication(user_id="u2", roles=frozenset({"admin"})))
