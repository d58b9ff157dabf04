"""Transaction merge reconciliation package."""

from bkper_cli.reconciliation.merger import (
    AmountConflictError,
    InvalidMergeRequestError,
    MergeError,
    TransactionMerger,
    TransactionNotFoundError,
    backfill_account,
    build_audit_note,
    merge_description,
    merge_files,
    merge_properties,
    merge_unique,
    reconcile_amount,
    select_roles,
)

__all__ = [
    "TransactionMerger",
    # Building blocks
    "backfill_account",
    "build_audit_note",
    "merge_description",
    "merge_files",
    "merge_properties",
    "merge_unique",
    "reconcile_amount",
    "select_roles",
    # Exceptions
    "AmountConflictError",
    "InvalidMergeRequestError",
    "MergeError",
    "TransactionNotFoundError",
]
