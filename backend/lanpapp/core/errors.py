"""Error Taxonomy — one exception class per failure kind, each bound to an HTTP status.

Invariants:
    - Every core operation fails with exactly one kind: bad request (400),
      unauthorized (401), forbidden (403), not found (404), conflict (409)
    - Infrastructure failures (database, identity provider) surface as 503
    - Subclasses inherit the HTTP status of their kind, so callers may catch
      either VotingClosedError or BadRequestError and both work
    - Messages are safe for clients: no SQL, no stack traces, no tokens

Design Decisions:
    - Kind metadata (code, category, severity, http_status) lives on the class;
      instances only carry the message, an optional code override and the ids
      of the lanpa / nomination / user involved
    - ErrorContext is a dataclass so the error handler can log the ids as
      structured fields without the core knowing about logging
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(str, Enum):
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Coarse grouping reported to clients next to the code."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Ids of whatever the failing request was acting on."""
    lanpa_id: str | None = None
    nomination_id: str | None = None
    user_id: str | None = None
    retry_after_ms: int | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class LanpAppError(Exception):
    """Root of the taxonomy. Never raised directly."""

    code: str = "INTERNAL_ERROR"
    category: ErrorCategory = ErrorCategory.INTERNAL
    severity: ErrorSeverity = ErrorSeverity.ERROR
    http_status: int = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.context = context or ErrorContext()

    def to_response(self) -> dict:
        """Body of the JSON error response."""
        ctx = self.context
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": ctx.occurred_at.isoformat(),
                "context": {
                    "lanpa_id": ctx.lanpa_id,
                    "nomination_id": ctx.nomination_id,
                    "retry_after_ms": ctx.retry_after_ms,
                },
            }
        }


# ─── 400 Bad request ────────────────────────────────────────────

class BadRequestError(LanpAppError):
    """Malformed input or an action that is illegal in the current state."""
    code = "BAD_REQUEST"
    category = ErrorCategory.BUSINESS_RULE
    http_status = 400


class IllegalTransitionError(BadRequestError):
    """Requested lanpa status is not reachable from the current one."""
    code = "ILLEGAL_TRANSITION"

    def __init__(self, current: str, requested: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cannot transition from {current} to {requested}", context=context,
        )
        self.current = current
        self.requested = requested


class PhaseClosedError(BadRequestError):
    """Action not available while the lanpa is in its current status."""
    code = "PHASE_CLOSED"

    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(message, context=context)


class VotingClosedError(BadRequestError):
    """Nomination no longer accepts votes."""
    code = "VOTING_CLOSED"

    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(message, context=context)


class VotingNotEndedError(BadRequestError):
    code = "VOTING_NOT_ENDED"

    def __init__(self, context: ErrorContext | None = None):
        super().__init__("Voting period has not ended yet", context=context)


class AlreadyFinalizedError(BadRequestError):
    code = "ALREADY_FINALIZED"

    def __init__(self, context: ErrorContext | None = None):
        super().__init__("Nomination has already been finalized", context=context)


class PersistenceError(BadRequestError):
    """Data store rejected the operation for a non-specific reason."""
    code = "PERSISTENCE_ERROR"
    category = ErrorCategory.DATABASE

    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(f"Failed to {operation}: {message}", context=context)
        self.operation = operation


# ─── 401 / 403 / 404 / 409 ──────────────────────────────────────

class UnauthorizedError(LanpAppError):
    """Missing or invalid credential."""
    code = "UNAUTHORIZED"
    category = ErrorCategory.AUTHENTICATION
    severity = ErrorSeverity.WARNING
    http_status = 401

    def __init__(self, message: str = "Unauthorized", context: ErrorContext | None = None):
        super().__init__(message, context=context)


class ForbiddenError(LanpAppError):
    """Authenticated but not permitted (wrong role, non-member, self-vote)."""
    code = "FORBIDDEN"
    category = ErrorCategory.AUTHORIZATION
    severity = ErrorSeverity.WARNING
    http_status = 403

    def __init__(self, message: str = "Forbidden", context: ErrorContext | None = None):
        super().__init__(message, context=context)


class ResourceNotFoundError(LanpAppError):
    code = "RESOURCE_NOT_FOUND"
    category = ErrorCategory.RESOURCE_NOT_FOUND
    http_status = 404

    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(f"{resource_type} '{resource_id}' not found", context=context)
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(LanpAppError):
    """Uniqueness violation (duplicate suggestion, referenced lanpa, ...)."""
    code = "CONFLICT"
    category = ErrorCategory.CONFLICT
    http_status = 409


class ConcurrencyError(ConflictError):
    """A conditional write lost the race against a concurrent request."""
    code = "CONCURRENCY_CONFLICT"

    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(message, context=context)


# ─── 503 Infrastructure ─────────────────────────────────────────

class DatabaseError(LanpAppError):
    """Database unreachable or failing at the connection level."""
    code = "DATABASE_ERROR"
    category = ErrorCategory.DATABASE
    severity = ErrorSeverity.CRITICAL
    http_status = 503

    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(f"Database {operation} failed: {message}", context=context)
        self.operation = operation


class IdentityProviderError(LanpAppError):
    """Identity provider could not be reached to verify a credential."""
    code = "IDENTITY_PROVIDER_ERROR"
    category = ErrorCategory.EXTERNAL_API
    severity = ErrorSeverity.CRITICAL
    http_status = 503

    def __init__(
        self,
        message: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        context = context or ErrorContext()
        context.retry_after_ms = retry_after_ms
        super().__init__(f"Identity provider error: {message}", context=context)
