"""Audit logging package."""

from invoicer.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
