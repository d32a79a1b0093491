"""
Error types for the Entity Fusion Engine.

Every error carries a stable error code, a severity level and a retriable
flag. The engine itself never retries; the flag is for callers.
"""

from enum import Enum
from uuid import UUID


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FusionEngineError(Exception):
    """Base error with structured metadata."""

    error_code = "FUSION_ERROR"
    severity = ErrorSeverity.MEDIUM
    retriable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, str | bool]:
        """Convert to dictionary for diagnostics output."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "retriable": self.retriable,
        }


class ConfigurationError(FusionEngineError):
    """Malformed or missing fusion rule / confidence model definitions."""

    error_code = "CONFIGURATION_ERROR"
    severity = ErrorSeverity.HIGH


class ValidationError(FusionEngineError):
    """Invalid input handed to the engine."""

    error_code = "VALIDATION_ERROR"
    severity = ErrorSeverity.LOW


class GeometryValidationError(ValidationError):
    """Geometry the distance capability cannot measure."""

    error_code = "UNSUPPORTED_GEOMETRY"

    def __init__(self, kind: str, reason: str | None = None):
        self.kind = kind
        message = f"Unsupported geometry for distance calculation: {kind}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class BatchTooLargeError(ValidationError):
    """Batch exceeds the configured admission limit."""

    error_code = "BATCH_TOO_LARGE"

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"Batch of {size} entities exceeds the limit of {limit}; "
            "pairwise correlation is quadratic, split or reject the batch upstream"
        )


class InternalError(FusionEngineError):
    """Broken engine invariant; surfaced immediately, never skipped."""

    error_code = "INTERNAL_ERROR"
    retriable = True


class MissingEntityError(InternalError):
    """A correlation group references an id absent from the batch."""

    error_code = "MISSING_ENTITY"

    def __init__(self, entity_id: UUID):
        self.entity_id = entity_id
        super().__init__(f"Group references entity {entity_id} which is not in the batch")
