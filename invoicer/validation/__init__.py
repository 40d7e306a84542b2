"""Validation package."""

from invoicer.validation.validator import InvoiceValidator, issues_from_pydantic

__all__ = ["InvoiceValidator", "issues_from_pydantic"]
