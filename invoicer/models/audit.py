"""
Audit Models for Invoicer

Every mutating action in the system is logged for audit purposes.
This provides:
1. Traceability of who changed what, and when
2. A per-user activity history
3. Debugging information when things go wrong

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
The subject of an entry is a closed enum plus an integer id, not a free string.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from invoicer.models.entities import utc_now
from invoicer.models.inputs import RequestContext


class AuditAction(str, Enum):
    """What happened."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    LOGOUT = "logout"
    REGISTER = "register"
    CONFIGURE = "configure"


class SubjectKind(str, Enum):
    """The kinds of record an audit entry can point at."""
    USER = "user"
    CLIENT = "client"
    PRODUCT = "product"
    INVOICE = "invoice"
    COMPANY = "company"


class NewAuditEntry(BaseModel):
    """An audit entry before the store assigns its id."""

    user_id: Optional[int] = Field(
        default=None,
        description="Acting user; None for system actions"
    )
    action: AuditAction
    subject_kind: Optional[SubjectKind] = None
    subject_id: Optional[int] = None
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional action-specific data"
    )
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)


class AuditLogEntry(NewAuditEntry):
    """
    A stored audit entry.

    Frozen: entries cannot be edited once appended.
    """
    model_config = ConfigDict(frozen=True)

    id: int

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "entry_id": self.id,
            "timestamp": self.created_at.isoformat(),
            "user_id": self.user_id,
            "action": self.action.value,
            "subject_kind": self.subject_kind.value if self.subject_kind else None,
            "subject_id": self.subject_id,
            "details": self.details,
            "ip": self.ip,
        }


class AuditEntryBuilder:
    """
    Helper class to build audit entries with common patterns.

    Usage:
        entry = AuditEntryBuilder.created(user_id, SubjectKind.CLIENT, client.id, {"name": client.name})
        entry = AuditEntryBuilder.logged_in(user_id, context)
    """

    @staticmethod
    def _context(context: Optional[RequestContext]) -> dict:
        if context is None:
            return {}
        return {"ip": context.ip, "user_agent": context.user_agent}

    @staticmethod
    def registered(
        user_id: int,
        email: str,
        context: Optional[RequestContext] = None,
    ) -> NewAuditEntry:
        return NewAuditEntry(
            user_id=user_id,
            action=AuditAction.REGISTER,
            subject_kind=SubjectKind.USER,
            subject_id=user_id,
            details={"email": email},
            **AuditEntryBuilder._context(context),
        )

    @staticmethod
    def logged_in(
        user_id: int,
        context: Optional[RequestContext] = None,
    ) -> NewAuditEntry:
        return NewAuditEntry(
            user_id=user_id,
            action=AuditAction.LOGIN,
            subject_kind=SubjectKind.USER,
            subject_id=user_id,
            **AuditEntryBuilder._context(context),
        )

    @staticmethod
    def logged_out(
        user_id: int,
        context: Optional[RequestContext] = None,
    ) -> NewAuditEntry:
        return NewAuditEntry(
            user_id=user_id,
            action=AuditAction.LOGOUT,
            subject_kind=SubjectKind.USER,
            subject_id=user_id,
            **AuditEntryBuilder._context(context),
        )

    @staticmethod
    def created(
        user_id: int,
        subject_kind: SubjectKind,
        subject_id: int,
        details: Optional[dict] = None,
        context: Optional[RequestContext] = None,
    ) -> NewAuditEntry:
        return NewAuditEntry(
            user_id=user_id,
            action=AuditAction.CREATE,
            subject_kind=subject_kind,
            subject_id=subject_id,
            details=details or {},
            **AuditEntryBuilder._context(context),
        )

    @staticmethod
    def updated(
        user_id: int,
        subject_kind: SubjectKind,
        subject_id: int,
        details: Optional[dict] = None,
        context: Optional[RequestContext] = None,
    ) -> NewAuditEntry:
        return NewAuditEntry(
            user_id=user_id,
            action=AuditAction.UPDATE,
            subject_kind=subject_kind,
            subject_id=subject_id,
            details=details or {},
            **AuditEntryBuilder._context(context),
        )

    @staticmethod
    def deleted(
        user_id: int,
        subject_kind: SubjectKind,
        subject_id: int,
        context: Optional[RequestContext] = None,
    ) -> NewAuditEntry:
        return NewAuditEntry(
            user_id=user_id,
            action=AuditAction.DELETE,
            subject_kind=subject_kind,
            subject_id=subject_id,
            **AuditEntryBuilder._context(context),
        )

    @staticmethod
    def configured(
        user_id: int,
        profile_id: int,
        company_name: str,
        context: Optional[RequestContext] = None,
    ) -> NewAuditEntry:
        return NewAuditEntry(
            user_id=user_id,
            action=AuditAction.CONFIGURE,
            subject_kind=SubjectKind.COMPANY,
            subject_id=profile_id,
            details={"name": company_name},
            **AuditEntryBuilder._context(context),
        )
