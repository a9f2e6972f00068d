"""HTML Helpers — property editor/viewer dispatch and enum analysis for Jinja2 views.

Invariants:
    - editor()/viewer() reject a None entity or property with ValueError
    - Partial name is <CustomType><Suffix> for OTHER properties, <Type><Suffix> otherwise;
      a missing partial falls back to Default<Suffix>
    - editor_for()/viewer_for() accept only direct member access on the item
    - enum_analyze() is memoized per enum type (lru_cache, thread safe)
"""

import operator
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any

from jinja2 import TemplateNotFound, pass_context
from jinja2.runtime import Context
from markupsafe import Markup

from entitymvc.core.metadata import PropertyMetadata, get_metadata
from entitymvc.core.view_models import EditorModel, EntityEditModel

MISSING: Any = object()

_ATTRGETTER = re.compile(r"^operator\.attrgetter\('([^']+)'\)$")


def _render_partial(
    context: Context, folder: str, suffix: str,
    entity: Any, prop: PropertyMetadata, value: Any,
) -> Markup:
    if context is None:
        raise ValueError("context is required")
    if entity is None:
        raise ValueError("entity is required")
    if prop is None:
        raise ValueError("property is required")
    if value is MISSING:
        value = prop.get_value(entity)
    model = EditorModel(metadata=prop, value=value, entity=entity)
    env = context.environment
    try:
        template = env.get_template(f"{folder}/{prop.template_name}{suffix}.html")
    except TemplateNotFound:
        template = env.get_template(f"{folder}/Default{suffix}.html")
    return Markup(template.render(
        model=model, request=context.get("request"),
    ))


@pass_context
def editor(
    context: Context, entity: Any, property: PropertyMetadata, value: Any = MISSING,
) -> Markup:
    """Render the editor partial for one property of an entity."""
    return _render_partial(context, "editors", "Editor", entity, property, value)


@pass_context
def viewer(
    context: Context, entity: Any, property: PropertyMetadata, value: Any = MISSING,
) -> Markup:
    """Render the viewer partial for one property of an entity."""
    return _render_partial(context, "viewers", "Viewer", entity, property, value)


def member_name(expression: Any) -> str:
    """Name of a direct member access: 'title' or operator.attrgetter('title')."""
    if isinstance(expression, str):
        name = expression
    elif isinstance(expression, operator.attrgetter):
        match = _ATTRGETTER.match(repr(expression))
        if not match:
            raise NotImplementedError("only single-attribute attrgetter is supported")
        name = match.group(1)
    else:
        raise NotImplementedError(
            f"unsupported member expression: {type(expression).__name__}",
        )
    if not name.isidentifier():
        raise NotImplementedError(f"'{name}' is not a direct member access")
    return name


def _resolve(model: EntityEditModel, expression: Any) -> tuple[PropertyMetadata, Any]:
    name = member_name(expression)
    return model.metadata.get_property(name), getattr(model.item, name)


@pass_context
def editor_for(context: Context, model: EntityEditModel, expression: Any) -> Markup:
    prop, value = _resolve(model, expression)
    return _render_partial(context, "editors", "Editor", model.item, prop, value)


@pass_context
def viewer_for(context: Context, model: EntityEditModel, expression: Any) -> Markup:
    prop, value = _resolve(model, expression)
    return _render_partial(context, "viewers", "Viewer", model.item, prop, value)


def display_text(entity: Any) -> str:
    """Display text of any mapped entity ('' for None)."""
    if entity is None:
        return ""
    return get_metadata(type(entity)).get_display_text(entity)


def display_index(entity: Any) -> str:
    """Key of any mapped entity as text ('' for None)."""
    if entity is None:
        return ""
    return str(get_metadata(type(entity)).key_property.get_value(entity))


@dataclass(frozen=True)
class EnumItem:
    """One selectable enum member: display name and underlying value."""
    name: str
    value: Any


@lru_cache(maxsize=None)
def enum_analyze(enum_type: type) -> tuple[EnumItem, ...]:
    """Display items of an Enum type; members may carry a `label` for display."""
    if not (isinstance(enum_type, type) and issubclass(enum_type, Enum)):
        name = getattr(enum_type, "__name__", repr(enum_type))
        raise TypeError(f"{name} is not a enum type.")
    items = []
    for member in enum_type:
        label = getattr(member, "label", None)
        items.append(EnumItem(
            name=label if isinstance(label, str) else member.name,
            value=member.value,
        ))
    return tuple(items)
