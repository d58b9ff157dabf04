"""
Data Models Package

This package contains all Pydantic models used by the Bkper CLI.
Everything read from or written to the ledger backend goes through
these schemas.
"""

from bkper_cli.models.book import Book, DecimalSeparator
from bkper_cli.models.transaction import (
    Account,
    Transaction,
    TransactionFile,
)
from bkper_cli.models.merge import (
    AmountPolicy,
    MergeOutcome,
    MergeResult,
    TransactionChanges,
)
from bkper_cli.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "Book",
    "DecimalSeparator",
    "Transaction",
    "TransactionFile",
    # Merge models
    "AmountPolicy",
    "MergeOutcome",
    "MergeResult",
    "TransactionChanges",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
