"""
Audit Models for the Bkper CLI

Every write the CLI performs against a book is described by an audit
event. Merges in particular touch two or three transactions in separate
backend calls, so the events of one merge share a correlation id and
together reconstruct what happened, even when a later call failed.

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each step of the merge flow has its own event type.
    """
    # Merge flow
    MERGE_REQUESTED = "merge_requested"
    ROLES_SELECTED = "roles_selected"
    MERGE_RECONCILED = "merge_reconciled"
    AMOUNT_CONFLICT = "amount_conflict"
    MERGE_COMPLETED = "merge_completed"
    MERGE_FAILED = "merge_failed"

    # Backend writes
    TRANSACTION_TRASHED = "transaction_trashed"
    TRANSACTION_UPDATED = "transaction_updated"
    AUDIT_RECORD_CREATED = "audit_record_created"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which book / transaction is this about?
    book_id: Optional[str] = None
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'book')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by every event of one merge"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "book_id": self.book_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.merge_requested(book_id, id1, id2, correlation_id)
        event = AuditEventBuilder.transaction_trashed(book_id, tx_id, correlation_id)
    """

    @staticmethod
    def merge_requested(
        book_id: str,
        transaction_id1: str,
        transaction_id2: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MERGE_REQUESTED,
            book_id=book_id,
            entity_type="book",
            entity_id=book_id,
            correlation_id=correlation_id,
            description=f"Merge requested: {transaction_id1} + {transaction_id2}",
            details={
                "transaction_ids": [transaction_id1, transaction_id2],
            },
        )

    @staticmethod
    def roles_selected(
        book_id: str,
        survivor_id: str,
        retired_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROLES_SELECTED,
            book_id=book_id,
            entity_type="transaction",
            entity_id=survivor_id,
            correlation_id=correlation_id,
            description=f"Keeping {survivor_id}, retiring {retired_id}",
            details={
                "survivor_id": survivor_id,
                "retired_id": retired_id,
            },
        )

    @staticmethod
    def merge_reconciled(
        book_id: str,
        survivor_id: str,
        changed_fields: list[str],
        audit_note: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MERGE_RECONCILED,
            book_id=book_id,
            entity_type="transaction",
            entity_id=survivor_id,
            correlation_id=correlation_id,
            description=f"Merged data computed ({len(changed_fields)} fields changed)",
            details={
                "changed_fields": changed_fields,
                "audit_note": audit_note,
            },
        )

    @staticmethod
    def amount_conflict(
        book_id: str,
        survivor_amount: str,
        retired_amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AMOUNT_CONFLICT,
            severity=AuditSeverity.WARNING,
            book_id=book_id,
            entity_type="book",
            entity_id=book_id,
            correlation_id=correlation_id,
            description=f"Merge refused: amounts differ ({survivor_amount} vs {retired_amount})",
            details={
                "survivor_amount": survivor_amount,
                "retired_amount": retired_amount,
            },
        )

    @staticmethod
    def transaction_trashed(
        book_id: str,
        transaction_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_TRASHED,
            book_id=book_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction trashed: {transaction_id}",
        )

    @staticmethod
    def transaction_updated(
        book_id: str,
        transaction_id: str,
        changed_fields: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            book_id=book_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction updated: {transaction_id}",
            details={
                "changed_fields": changed_fields,
            },
        )

    @staticmethod
    def audit_record_created(
        book_id: str,
        transaction_id: Optional[str],
        audit_note: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUDIT_RECORD_CREATED,
            book_id=book_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Audit record created for amount difference",
            details={
                "audit_note": audit_note,
            },
        )

    @staticmethod
    def merge_completed(
        book_id: str,
        survivor_id: str,
        retired_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MERGE_COMPLETED,
            book_id=book_id,
            entity_type="transaction",
            entity_id=survivor_id,
            correlation_id=correlation_id,
            description=f"Merge completed: {retired_id} merged into {survivor_id}",
            details={
                "survivor_id": survivor_id,
                "retired_id": retired_id,
            },
        )

    @staticmethod
    def merge_failed(
        book_id: str,
        error_type: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MERGE_FAILED,
            severity=AuditSeverity.WARNING,
            book_id=book_id,
            entity_type="book",
            entity_id=book_id,
            correlation_id=correlation_id,
            description=f"Merge failed: {error_type}",
            error_code=error_type,
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        operation: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service} ({operation})",
            error_message=error_message,
            details={
                "service": service,
                "operation": operation,
            },
            correlation_id=correlation_id,
        )
