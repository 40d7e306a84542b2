"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Types, required fields, ranges
- Done by the pydantic input models; their errors are translated
  into ValidationIssue objects here

STAGE 2 - SEMANTIC VALIDATION:
- Rules that span several fields of an invoice draft
- At least one line, and a due date not before the issue date

IMPORTANT: Validation NEVER silently fixes issues and never touches the
store. Everything it rejects is rejected before any write happens.
"""

from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from invoicer.errors import ValidationFailedError
from invoicer.models.inputs import InvoiceDraft
from invoicer.models.results import ValidationIssue


def issues_from_pydantic(error: ValidationError) -> list[ValidationIssue]:
    """
    Translate a pydantic ValidationError into field-identified issues.

    Nested locations become dotted paths, e.g. ("lines", 0, "quantity")
    becomes "lines.0.quantity".
    """
    issues = []
    for err in error.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
        issues.append(ValidationIssue(
            field=loc,
            issue_type=err.get("type", "invalid_value"),
            message=err.get("msg", "Invalid value"),
        ))
    return issues


class InvoiceValidator:
    """
    Validates invoice drafts and search queries.

    Stage 1 has already run when a draft object exists; this class runs
    stage 2 and raises with every issue found at once.
    """

    def _validate_semantic(
        self,
        draft: InvoiceDraft,
        issue_date: Optional[datetime] = None,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Checks:
        - Line list is not empty
        - Due date is not before the issue date

        Per-line quantity and price ranges are schema rules (stage 1).
        """
        issues = []

        if not draft.lines:
            issues.append(ValidationIssue(
                field="lines",
                issue_type="missing",
                message="An invoice needs at least one line",
            ))

        issue_date = draft.issue_date or issue_date
        if draft.due_date and issue_date and draft.due_date < issue_date:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="inconsistent",
                message="Due date cannot be before issue date",
            ))

        return issues

    def validate_draft(
        self,
        draft: InvoiceDraft,
        issue_date: Optional[datetime] = None,
    ) -> None:
        """
        Run stage 2 on a draft.

        Args:
            draft: The parsed invoice draft
            issue_date: Issue date to assume when the draft has none

        Raises:
            ValidationFailedError: With every issue found
        """
        issues = self._validate_semantic(draft, issue_date)
        if issues:
            summary = "; ".join(f"{i.field}: {i.message}" for i in issues)
            raise ValidationFailedError(f"Invalid invoice: {summary}", issues)

    def validate_due_date(
        self,
        due_date: Optional[datetime],
        issue_date: datetime,
    ) -> None:
        """Used when the due date of an existing invoice is edited."""
        if due_date is not None and due_date < issue_date:
            raise ValidationFailedError.single(
                "due_date", "inconsistent", "Due date cannot be before issue date"
            )

    def validate_search_query(self, query: Optional[str]) -> str:
        """A search needs a non-blank term."""
        term = (query or "").strip()
        if not term:
            raise ValidationFailedError.single(
                "query", "missing", "Search query is required"
            )
        return term
