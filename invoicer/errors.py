"""
Error taxonomy.

Every failure the core can report belongs to one ErrorKind. The service
converts these exceptions into OperationResult at its boundary.
"""

from typing import Optional

from invoicer.models.results import ErrorKind, ValidationIssue


class InvoicingError(Exception):
    """Base exception for the bookkeeping core."""

    kind: ErrorKind = ErrorKind.INTERNAL


class ValidationFailedError(InvoicingError):
    """Input rejected before any write. Carries the offending fields."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []

    @classmethod
    def single(cls, field: str, issue_type: str, message: str) -> "ValidationFailedError":
        return cls(message, [ValidationIssue(field=field, issue_type=issue_type, message=message)])


class NotFoundError(InvoicingError):
    """
    Record absent, or owned by someone else.

    The two causes are deliberately indistinguishable.
    """

    kind = ErrorKind.NOT_FOUND


class ConflictError(InvoicingError):
    """A unique field is already taken."""

    kind = ErrorKind.CONFLICT


class InternalError(InvoicingError):
    """Unexpected failure."""

    kind = ErrorKind.INTERNAL
