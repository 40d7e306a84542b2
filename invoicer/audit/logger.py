"""
Audit Logger

DESIGN DECISION: Every mutating action in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. Users can see the history of their own actions

The audit logger:
- Is called only after the mutation it describes has succeeded
- Gracefully handles failures (a failed append never undoes or fails the mutation)
- Echoes every entry to the local structured log
"""

import logging
from typing import Any, Optional

import structlog

from invoicer.config import InvoicingSettings, get_settings
from invoicer.models.audit import (
    AuditAction,
    AuditEntryBuilder,
    AuditLogEntry,
    NewAuditEntry,
    SubjectKind,
)
from invoicer.models.inputs import RequestContext
from invoicer.services.storage import AuditStorageInterface


def configure_logging(settings: Optional[InvoicingSettings] = None) -> None:
    """Configure structlog for local logging."""
    settings = settings or get_settings()
    logging.basicConfig(format="%(message)s", level=settings.log_level)
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs entries both to:
    1. Structured local log (for debugging)
    2. The audit store (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        query_limit: Optional[int] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            query_limit: Maximum entries returned by query().
                    If None, every entry is returned.
        """
        self._storage = storage
        self._query_limit = query_limit
        self._logger = structlog.get_logger(__name__)

    def log(self, entry: NewAuditEntry) -> Optional[AuditLogEntry]:
        """
        Log an audit entry.

        Always logs locally. Persists to storage if available.

        Returns the stored entry, or None if there is no storage or the
        append failed.
        """
        if self._storage is None:
            self._logger.info("audit_entry", **entry.model_dump(mode="json"))
            return None

        try:
            stored = self._storage.append_entry(entry)
        except Exception as e:
            # Log failure but don't raise
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                action=entry.action.value,
                user_id=entry.user_id,
            )
            return None

        self._logger.info("audit_entry", **stored.to_log_dict())
        return stored

    def record(
        self,
        user_id: Optional[int],
        action: AuditAction,
        subject_kind: Optional[SubjectKind] = None,
        subject_id: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        context: Optional[RequestContext] = None,
    ) -> Optional[AuditLogEntry]:
        """Append a free-form entry. System actions pass user_id=None."""
        entry = NewAuditEntry(
            user_id=user_id,
            action=action,
            subject_kind=subject_kind,
            subject_id=subject_id,
            details=details or {},
            ip=context.ip if context else None,
            user_agent=context.user_agent if context else None,
        )
        return self.log(entry)

    def query(self, user_id: int) -> list[AuditLogEntry]:
        """Entries for the user's actions, newest first."""
        if self._storage is None:
            return []
        return self._storage.get_entries_for_user(user_id, limit=self._query_limit)

    def log_registered(
        self,
        user_id: int,
        email: str,
        context: Optional[RequestContext] = None,
    ) -> None:
        """Log account registration."""
        self.log(AuditEntryBuilder.registered(user_id, email, context))

    def log_login(
        self,
        user_id: int,
        context: Optional[RequestContext] = None,
    ) -> None:
        self.log(AuditEntryBuilder.logged_in(user_id, context))

    def log_logout(
        self,
        user_id: int,
        context: Optional[RequestContext] = None,
    ) -> None:
        self.log(AuditEntryBuilder.logged_out(user_id, context))

    def log_created(
        self,
        user_id: int,
        subject_kind: SubjectKind,
        subject_id: int,
        details: Optional[dict] = None,
        context: Optional[RequestContext] = None,
    ) -> None:
        """Log record creation."""
        self.log(AuditEntryBuilder.created(user_id, subject_kind, subject_id, details, context))

    def log_updated(
        self,
        user_id: int,
        subject_kind: SubjectKind,
        subject_id: int,
        details: Optional[dict] = None,
        context: Optional[RequestContext] = None,
    ) -> None:
        """Log record update."""
        self.log(AuditEntryBuilder.updated(user_id, subject_kind, subject_id, details, context))

    def log_deleted(
        self,
        user_id: int,
        subject_kind: SubjectKind,
        subject_id: int,
        context: Optional[RequestContext] = None,
    ) -> None:
        """Log record deletion (soft or hard)."""
        self.log(AuditEntryBuilder.deleted(user_id, subject_kind, subject_id, context))

    def log_configured(
        self,
        user_id: int,
        profile_id: int,
        company_name: str,
        context: Optional[RequestContext] = None,
    ) -> None:
        """Log company profile save."""
        self.log(AuditEntryBuilder.configured(user_id, profile_id, company_name, context))
