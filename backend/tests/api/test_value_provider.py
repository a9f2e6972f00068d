"""Value Provider — merged, multi-valued request values.

Tests cover:
    - Later sources override earlier ones per key
    - Repeated keys keep every value
    - Prefix extraction for search terms
    - Building from a real request (query + form / JSON body)
"""

import json

from starlette.requests import Request

from entitymvc.api.value_provider import ValueProvider, get_value_provider


def _request(method: str, query: bytes = b"", body: bytes = b"", content_type: str = ""):
    headers = [(b"content-type", content_type.encode())] if content_type else []
    sent = False

    async def receive():
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request({
        "type": "http", "method": method, "path": "/thread/update",
        "query_string": query, "headers": headers, "path_params": {},
    }, receive)


def test_later_source_overrides_earlier():
    values = ValueProvider({"id": "route"}, [("id", "query"), ("page", "2")])
    assert values["id"] == "query"
    assert values.get("page") == "2"


def test_repeated_keys_keep_every_value():
    values = ValueProvider([("tag", "a"), ("tag", "b")])
    assert values.get_list("tag") == ["a", "b"]
    assert values["tag"] == "b"


def test_contains_and_missing():
    values = ValueProvider({"title": ""})
    assert values.contains("title")
    assert not values.contains("status")
    assert values.get("status") is None
    assert values.get_list("status") == []


def test_keys_with_prefix():
    values = ValueProvider({"search.title": "x", "search.": "ignored", "page": "1"})
    assert values.keys_with_prefix("search.") == {"title": "x"}


async def test_get_value_provider_merges_query_and_form():
    request = _request(
        "POST", query=b"id=1&page=3", body=b"id=2&title=Hello",
        content_type="application/x-www-form-urlencoded",
    )
    values = await get_value_provider(request)
    assert values["id"] == "2"
    assert values["page"] == "3"
    assert values["title"] == "Hello"


async def test_get_value_provider_flattens_json_lists():
    body = json.dumps({"title": "Hi", "tags": ["a", "b"], "count": 3}).encode()
    request = _request("POST", body=body, content_type="application/json")
    values = await get_value_provider(request)
    assert values["title"] == "Hi"
    assert values.get_list("tags") == ["a", "b"]
    assert values["count"] == 3


async def test_get_value_provider_ignores_malformed_json():
    request = _request("POST", query=b"id=1", body=b"{oops", content_type="application/json")
    values = await get_value_provider(request)
    assert dict(values) == {"id": "1"}


async def test_get_value_provider_skips_body_on_get():
    request = _request("GET", query=b"search.title=abc")
    values = await get_value_provider(request)
    assert values.keys_with_prefix("search.") == {"title": "abc"}
