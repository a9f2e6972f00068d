"""JSON Converters — metadata-driven serialization of entities and view models.

Invariants:
    - Only properties selected by the authorize option's action AND viewable by the
      caller are serialized (view → list, create/edit → edit, detail → detail)
    - Every serialized entity carries "Index" (key) and "Display"
    - Related entities serialize as {"Index", "Display"}; collections as lists of those
    - Password values never leave the server

Design Decisions:
    - Plain converter classes returning dicts, encoded once by serialize():
      FastAPI's jsonable_encoder handles UUID/datetime/Decimal scalars
    - PascalCase keys: the wire shape browser-side scripts expect
"""

import json
from enum import Enum
from typing import Any

from fastapi.encoders import jsonable_encoder

from entitymvc.core.metadata import (
    CustomDataType, EntityMetadata, PropertyMetadata, get_metadata,
)
from entitymvc.core.security import Authentication, AuthorizeOption, EntityAction
from entitymvc.core.view_models import (
    EntityEditModel, EntityViewButton, EntityViewModel,
)
from entitymvc.rendering.html_helpers import enum_analyze


def entity_reference(entity: Any) -> dict | None:
    if entity is None:
        return None
    metadata = get_metadata(type(entity))
    return {
        "Index": jsonable_encoder(metadata.key_property.get_value(entity)),
        "Display": metadata.get_display_text(entity),
    }


class EntityJsonConverter:
    """Serializes entities according to an authorize option and caller."""

    def __init__(self, option: AuthorizeOption, authentication: Authentication):
        self.option = option
        self.authentication = authentication

    def select_properties(self, metadata: EntityMetadata) -> tuple[PropertyMetadata, ...]:
        action = self.option.action
        if action in (EntityAction.CREATE, EntityAction.EDIT):
            candidates = metadata.edit_properties
        elif action == EntityAction.DETAIL:
            candidates = metadata.detail_properties
        else:
            candidates = metadata.view_properties
        return tuple(p for p in candidates if p.is_viewable(self.authentication))

    def convert_value(self, prop: PropertyMetadata, value: Any) -> Any:
        if prop.type == CustomDataType.PASSWORD:
            return None
        if prop.type == CustomDataType.ENTITY:
            return entity_reference(value)
        if prop.type == CustomDataType.COLLECTION:
            return [entity_reference(v) for v in (value or [])]
        if isinstance(value, Enum):
            return jsonable_encoder(value.value)
        return jsonable_encoder(value)

    def convert(self, entity: Any) -> dict:
        metadata = get_metadata(type(entity))
        data = {
            "Index": jsonable_encoder(metadata.key_property.get_value(entity)),
            "Display": metadata.get_display_text(entity),
        }
        for prop in self.select_properties(metadata):
            data[prop.clr_name] = self.convert_value(prop, prop.get_value(entity))
        return data


class PropertyMetadataJsonConverter:
    def convert(self, prop: PropertyMetadata) -> dict:
        data = {
            "ClrName": prop.clr_name,
            "Name": prop.name,
            "Type": prop.type.value,
            "CustomType": prop.custom_type,
            "Order": prop.order,
            "IsRequired": prop.is_required,
            "IsKey": prop.is_key,
            "IsSearchable": prop.is_searchable,
            "MaxLength": prop.max_length,
        }
        if prop.enum_type is not None:
            data["EnumItems"] = [
                {"Name": item.name, "Value": jsonable_encoder(item.value)}
                for item in enum_analyze(prop.enum_type)
            ]
        if prop.target_type is not None:
            data["TargetType"] = get_metadata(prop.target_type).name
        return data


class EntityMetadataJsonConverter:
    def __init__(self, property_converter: PropertyMetadataJsonConverter | None = None):
        self.property_converter = property_converter or PropertyMetadataJsonConverter()

    def convert(
        self, metadata: EntityMetadata,
        properties: tuple[PropertyMetadata, ...] | None = None,
    ) -> dict:
        if properties is None:
            properties = metadata.properties
        return {
            "Name": metadata.name,
            "Type": metadata.type.__name__,
            "Key": metadata.key_property.clr_name,
            "DisplayProperty": metadata.display_property.clr_name,
            "SortProperty": metadata.sort_property.clr_name,
            "SortDescending": metadata.sort_descending,
            "AllowAnonymous": metadata.allow_anonymous,
            "Properties": [self.property_converter.convert(p) for p in properties],
        }


def _buttons(buttons: list[EntityViewButton]) -> list[dict]:
    return [
        {"Name": b.name, "Icon": b.icon, "Target": b.target, "Method": b.method}
        for b in buttons
    ]


class EntityViewModelJsonConverter:
    def __init__(self, metadata_converter: EntityMetadataJsonConverter | None = None):
        self.metadata_converter = metadata_converter or EntityMetadataJsonConverter()

    def convert(self, model: EntityViewModel, entity_converter: EntityJsonConverter) -> dict:
        properties = entity_converter.select_properties(model.metadata)
        return {
            "Items": [entity_converter.convert(item) for item in model.items],
            "Page": model.page,
            "Size": model.size,
            "Total": model.total,
            "TotalPages": model.total_pages,
            "Search": model.search,
            "Metadata": self.metadata_converter.convert(model.metadata, properties),
            "ViewButtons": _buttons(model.view_buttons),
            "ItemButtons": _buttons(model.item_buttons),
        }


class EntityEditModelJsonConverter:
    def __init__(self, metadata_converter: EntityMetadataJsonConverter | None = None):
        self.metadata_converter = metadata_converter or EntityMetadataJsonConverter()

    def convert(self, model: EntityEditModel, entity_converter: EntityJsonConverter) -> dict:
        properties = tuple(
            p for p in model.properties
            if p.is_viewable(entity_converter.authentication)
        )
        return {
            "Item": entity_converter.convert(model.item),
            "IsNew": model.is_new,
            "Metadata": self.metadata_converter.convert(model.metadata, properties),
            "Properties": [p.clr_name for p in properties],
        }


def serialize(model: Any, entity_converter: EntityJsonConverter) -> str:
    """Encode a view model, edit model or single entity as a JSON string."""
    if isinstance(model, EntityViewModel):
        data = EntityViewModelJsonConverter().convert(model, entity_converter)
    elif isinstance(model, EntityEditModel):
        data = EntityEditModelJsonConverter().convert(model, entity_converter)
    else:
        data = entity_converter.convert(model)
    return json.dumps(data, ensure_ascii=False)
