"""
Result Models

Every public operation of the service returns an OperationResult.
Failures are never raised across that boundary; they come back as an
error kind, a message and, for validation failures, the offending fields.
"""

from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue, dotted path for nested input (lines.0.quantity)"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'inconsistent')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


class OperationResult(BaseModel, Generic[T]):
    """
    Outcome of a public operation.

    Exactly one of `value` (on success) or `error_kind` (on failure) is meaningful.
    """

    success: bool
    value: Optional[T] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    issues: list[ValidationIssue] = Field(default_factory=list)

    @classmethod
    def ok(cls, value: T) -> "OperationResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str,
        issues: Optional[list[ValidationIssue]] = None,
    ) -> "OperationResult[T]":
        return cls(
            success=False,
            error_kind=kind,
            error_message=message,
            issues=issues or [],
        )

    @property
    def failed_fields(self) -> list[str]:
        return [issue.field for issue in self.issues]
