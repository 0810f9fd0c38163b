"""
Error types for explicit failure reporting.

Every public read in this toolkit returns "the best data available plus an
error object" instead of raising. ProcessingError is that error object.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Severity levels for processing errors."""

    WARNING = "warning"  # Partial data: the item is kept with a default
    ERROR = "error"  # The item is missing or unresolved


@dataclass
class ProcessingError:
    """
    Represents a single processing error with context.

    Attributes:
        source: Component that generated the error (e.g., "extension_resolver.stage1")
        message: Human-readable error description
        severity: How severe the error is (affects control flow)
        context: Additional context like token, action_ids, account
        exception: Original exception if available
    """

    source: str
    message: str
    severity: ErrorSeverity
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None

    @classmethod
    def from_exception(
        cls,
        source: str,
        exception: Exception,
        context: Optional[Dict[str, Any]] = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> "ProcessingError":
        """Wrap an exception raised by a remote read."""
        return cls(
            source=source,
            message=str(exception),
            severity=severity,
            context=context or {},
            exception=exception,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source": self.source,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
        }


def first_error(
    *errors: Optional[ProcessingError],
) -> Optional[ProcessingError]:
    """Return the first non-None error, in argument order."""
    for error in errors:
        if error is not None:
            return error
    return None
