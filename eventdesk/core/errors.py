"""Error Hierarchy: typed, categorized exceptions for all EventDesk failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) leave the store untouched; they are raised before any mutation
    - DecodeError is local to one persisted line and never escapes the loader
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with EventDeskError base: FastAPI global handler catches all
    - ErrorContext as dataclass: observability fields without coupling to logging
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
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    AUTHENTICATION = "authentication"
    PERSISTENCE = "persistence"


@dataclass
class ErrorContext:
    """Context attached to an error for logs and responses."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    entity_kind: str | None = None
    entity_id: int | None = None
    operation: str | None = None
    debug_info: dict[str, Any] | None = None


class EventDeskError(Exception):
    """Base exception for all EventDesk errors."""

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
                    "entity_kind": self.context.entity_kind,
                    "entity_id": self.context.entity_id,
                    "operation": self.context.operation,
                },
            }
        }


# --- Domain Errors (400-level) ------------------------------------------------

class FieldValidationError(EventDeskError):
    """Input value rejected by a store rule (password length, negative quantity...)."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class DuplicateKeyError(EventDeskError):
    """Secondary key (username, item name) already taken."""
    def __init__(
        self, entity_kind: str, key: str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.entity_kind = entity_kind
        super().__init__(
            f"{entity_kind} '{key}' already exists",
            "DUPLICATE_KEY", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, ctx, 409,
        )
        self.key = key


class NotFoundError(EventDeskError):
    """Requested entity does not exist."""
    def __init__(
        self, entity_kind: str, key: int | str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.entity_kind = entity_kind
        if isinstance(key, int):
            ctx.entity_id = key
        super().__init__(
            f"{entity_kind} '{key}' not found",
            "NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )
        self.key = key


class InsufficientInventoryError(EventDeskError):
    """Allocation request exceeds the item's available quantity."""
    def __init__(
        self, item_name: str, requested: int, available: int,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Cannot allocate {requested} of '{item_name}': only {available} available",
            "INSUFFICIENT_INVENTORY", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.requested = requested
        self.available = available


class PolicyViolationError(EventDeskError):
    """Operation forbidden by a business rule (self-delete, closed event, role)."""
    def __init__(
        self, message: str, rule: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            message, rule, ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 403,
        )
        self.rule = rule


class AuthError(EventDeskError):
    """Unknown username or wrong password."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid username or password",
            "AUTH_FAILED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


# --- Persistence Errors -------------------------------------------------------

class StorageError(EventDeskError):
    """Writing a record file failed. The in-memory change is rolled back."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Storage {operation} failed: {message}",
            "STORAGE_ERROR", ErrorCategory.PERSISTENCE,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.operation = operation


class DecodeError(EventDeskError):
    """A persisted line could not be decoded. Caught per line by the loader."""
    def __init__(self, message: str, line: str, context: ErrorContext | None = None):
        super().__init__(
            f"Malformed record: {message}",
            "DECODE_ERROR", ErrorCategory.PERSISTENCE,
            ErrorSeverity.WARNING, context, 500,
        )
        self.line = line
