"""Error Hierarchy — verifies codes, statuses and the REST error envelope."""

from entitymvc.core.errors import (
    DatabaseError, EntityMvcError, EntityNotFoundError, ErrorCategory,
    ErrorContext, ErrorSeverity, UnauthorizedAccessError,
)


def test_unauthorized_maps_to_401():
    exc = UnauthorizedAccessError("Not allowed to view Thread.")
    assert exc.http_status == 401
    assert exc.code == "UNAUTHORIZED"
    assert exc.category == ErrorCategory.AUTHORIZATION
    assert isinstance(exc, EntityMvcError)


def test_not_found_message_includes_id():
    exc = EntityNotFoundError("Thread", "abc")
    assert exc.http_status == 404
    assert exc.message == "Thread 'abc' not found"
    assert exc.entity_id == "abc"


def test_not_found_without_id():
    assert EntityNotFoundError("Thread", None).message == "Thread not found"


def test_database_error_is_critical_503():
    exc = DatabaseError("Integrity constraint violated", "commit")
    assert exc.http_status == 503
    assert exc.severity == ErrorSeverity.CRITICAL
    assert exc.message == "Database commit failed: Integrity constraint violated"


def test_to_response_envelope():
    exc = EntityNotFoundError(
        "Thread", "abc", ErrorContext(entity="Thread", action="edit", entity_id="abc"),
    )
    body = exc.to_response()["error"]
    assert body["code"] == "ENTITY_NOT_FOUND"
    assert body["category"] == "resource_not_found"
    assert body["severity"] == "warning"
    assert body["context"] == {"entity": "Thread", "action": "edit", "entity_id": "abc"}
    assert "timestamp" in body
