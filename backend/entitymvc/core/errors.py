"""Error Hierarchy — typed, categorized exceptions for entity scaffolding failures.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - UnauthorizedAccessError maps to 401, EntityNotFoundError maps to 404
    - to_response() produces the REST envelope used by the global handlers
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with EntityMvcError base: FastAPI global handler catches all
      (ADR: uniform error shape)
    - Controllers translate the two access errors themselves; everything else
      reaches the global handlers untouched
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    entity: str | None = None
    action: str | None = None
    entity_id: str | None = None
    debug_info: dict[str, Any] | None = None


class EntityMvcError(Exception):
    """Base exception for all entity scaffolding errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "entity": self.context.entity,
                    "action": self.context.action,
                    "entity_id": self.context.entity_id,
                },
            }
        }


# ─── Access Errors (400-level) ──────────────────────────────────

class UnauthorizedAccessError(EntityMvcError):
    """Caller is not allowed to perform the requested entity action."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "UNAUTHORIZED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 401,
        )


class EntityNotFoundError(EntityMvcError):
    """Requested entity does not exist."""
    def __init__(
        self, entity_type: str, entity_id: str | None,
        context: ErrorContext | None = None,
    ):
        if entity_id:
            message = f"{entity_type} '{entity_id}' not found"
        else:
            message = f"{entity_type} not found"
        super().__init__(
            message, "ENTITY_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(EntityMvcError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
