"""
Audit Logger

DESIGN DECISION: Every write the CLI makes to a book is logged.
This provides:
1. Complete traceability of merges (which transaction survived, what changed)
2. Debugging capability when a multi-step merge fails halfway
3. A record of amount differences found during merges

The audit logger:
- Writes structured events through structlog
- Keeps the events of the current process in memory (history)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from bkper_cli.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(level: str = "WARNING", json_output: bool = False) -> None:
    """
    Configure structlog (and the stdlib logging it renders through).

    Logs go to stderr so they never mix with command output on stdout.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.WARNING),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
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


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and keeps them in
    `history` for the lifetime of the process.
    """

    def __init__(self, logger_name: str = "bkper_cli.audit"):
        self._logger = structlog.get_logger(logger_name)
        self.history: list[AuditEvent] = []

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self.history.append(event)
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def events_for(self, correlation_id: UUID) -> list[AuditEvent]:
        """All events of one flow, in the order they were logged."""
        return [e for e in self.history if e.correlation_id == correlation_id]

    def log_merge_requested(
        self,
        book_id: str,
        transaction_id1: str,
        transaction_id2: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.merge_requested(
            book_id=book_id,
            transaction_id1=transaction_id1,
            transaction_id2=transaction_id2,
            correlation_id=correlation_id,
        ))

    def log_roles_selected(
        self,
        book_id: str,
        survivor_id: str,
        retired_id: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.roles_selected(
            book_id=book_id,
            survivor_id=survivor_id,
            retired_id=retired_id,
            correlation_id=correlation_id,
        ))

    def log_merge_reconciled(
        self,
        book_id: str,
        survivor_id: str,
        changed_fields: list[str],
        audit_note: Optional[str],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.merge_reconciled(
            book_id=book_id,
            survivor_id=survivor_id,
            changed_fields=changed_fields,
            audit_note=audit_note,
            correlation_id=correlation_id,
        ))

    def log_amount_conflict(
        self,
        book_id: str,
        survivor_amount: str,
        retired_amount: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.amount_conflict(
            book_id=book_id,
            survivor_amount=survivor_amount,
            retired_amount=retired_amount,
            correlation_id=correlation_id,
        ))

    def log_transaction_trashed(
        self,
        book_id: str,
        transaction_id: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.transaction_trashed(
            book_id=book_id,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    def log_transaction_updated(
        self,
        book_id: str,
        transaction_id: str,
        changed_fields: list[str],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.transaction_updated(
            book_id=book_id,
            transaction_id=transaction_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    def log_audit_record_created(
        self,
        book_id: str,
        transaction_id: Optional[str],
        audit_note: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.audit_record_created(
            book_id=book_id,
            transaction_id=transaction_id,
            audit_note=audit_note,
            correlation_id=correlation_id,
        ))

    def log_merge_completed(
        self,
        book_id: str,
        survivor_id: str,
        retired_id: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.merge_completed(
            book_id=book_id,
            survivor_id=survivor_id,
            retired_id=retired_id,
            correlation_id=correlation_id,
        ))

    def log_merge_failed(
        self,
        book_id: str,
        error: Exception,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.merge_failed(
            book_id=book_id,
            error_type=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
        ))

    def log_external_service_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: UUID,
        service: str = "bkper",
    ) -> None:
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a merge).
    Pass it through all subsequent operations.
    """
    return uuid4()
