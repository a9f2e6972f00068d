"""Value Provider — merged view of the values a request carries.

Invariants:
    - Sources merge in order route → query → body; later sources override earlier ones
    - Keys are case-sensitive; repeated keys keep every value (get_list)
    - Body is read only for form or JSON content types

Design Decisions:
    - Read-only Mapping over a plain dict: services cannot mutate request input
    - JSON bodies flatten one level (lists become repeated values) so form and
      JSON clients bind through the same path
"""

import json
import logging
from collections.abc import Iterator, Mapping
from typing import Any

from starlette.requests import Request

logger = logging.getLogger(__name__)


class ValueProvider(Mapping):
    """Multi-valued, read-only request values."""

    def __init__(self, *sources: Mapping[str, Any] | list[tuple[str, Any]]):
        self._values: dict[str, list[Any]] = {}
        for source in sources:
            pairs = source.items() if isinstance(source, Mapping) else source
            merged: dict[str, list[Any]] = {}
            for key, value in pairs:
                merged.setdefault(key, []).append(value)
            self._values.update(merged)

    def __getitem__(self, key: str) -> Any:
        return self._values[key][-1]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get_list(self, key: str) -> list[Any]:
        return list(self._values.get(key, []))

    def contains(self, key: str) -> bool:
        return key in self._values

    def keys_with_prefix(self, prefix: str) -> dict[str, Any]:
        """Values whose key starts with prefix, keyed by the remainder."""
        return {
            key[len(prefix):]: self[key]
            for key in self._values
            if key.startswith(prefix) and len(key) > len(prefix)
        }


def _flatten_json(body: Any) -> list[tuple[str, Any]]:
    if not isinstance(body, dict):
        return []
    pairs: list[tuple[str, Any]] = []
    for key, value in body.items():
        if isinstance(value, list):
            pairs.extend((key, item) for item in value)
        else:
            pairs.append((key, value))
    return pairs


async def get_value_provider(request: Request) -> ValueProvider:
    """FastAPI dependency building the value provider for this request."""
    body: list[tuple[str, Any]] = []
    if request.method in ("POST", "PUT", "PATCH"):
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            raw = await request.body()
            if raw:
                try:
                    body = _flatten_json(json.loads(raw))
                except ValueError:
                    logger.warning(
                        "Ignoring malformed JSON body",
                        extra={"path": request.url.path},
                    )
        elif content_type.startswith((
            "application/x-www-form-urlencoded", "multipart/form-data",
        )):
            form = await request.form()
            body = list(form.multi_items())
    return ValueProvider(
        request.path_params,
        request.query_params.multi_items(),
        body,
    )
