"""
Merge Models

Values produced by a transaction merge. None of these are persisted as
entities of their own: they are built once per merge, consumed by the
persistence flow, rendered, and discarded.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from bkper_cli.models.transaction import Account, Transaction, TransactionFile


class AmountPolicy(str, Enum):
    """
    What to do when both transactions carry different amounts.

    STRICT refuses the merge and asks for manual reconciliation.
    AUDIT keeps the survivor's amount and records the difference as a
    separate audit transaction.
    """
    STRICT = "strict"
    AUDIT = "audit"


class TransactionChanges(BaseModel):
    """
    Field-level diff between the survivor as fetched and the merged value.

    The backend receives the full merged payload; this diff is what the
    audit trail records, so reviewers can see exactly what a merge touched.
    """
    model_config = ConfigDict(frozen=True)

    description: Optional[str] = None
    amount: Optional[Decimal] = None
    credit_account: Optional[Account] = None
    debit_account: Optional[Account] = None
    properties: Optional[dict[str, str]] = None
    urls: Optional[list[str]] = None
    added_remote_ids: list[str] = Field(default_factory=list)
    added_files: list[TransactionFile] = Field(default_factory=list)

    @classmethod
    def between(cls, before: Transaction, after: Transaction) -> "TransactionChanges":
        """Compute the changes that turn `before` into `after`."""
        known_remote_ids = set(before.remote_ids)
        return cls(
            description=after.description if after.description != before.description else None,
            amount=after.amount if after.amount != before.amount else None,
            credit_account=(
                after.credit_account
                if after.credit_account != before.credit_account
                else None
            ),
            debit_account=(
                after.debit_account
                if after.debit_account != before.debit_account
                else None
            ),
            properties=after.properties if after.properties != before.properties else None,
            urls=after.urls if after.urls != before.urls else None,
            added_remote_ids=[
                remote_id for remote_id in after.remote_ids
                if remote_id not in known_remote_ids
            ],
            added_files=after.files[len(before.files):],
        )

    @property
    def changed_fields(self) -> list[str]:
        """Names of the fields this diff touches, in a stable order."""
        fields = []
        for name in (
            "description",
            "amount",
            "credit_account",
            "debit_account",
            "properties",
            "urls",
        ):
            if getattr(self, name) is not None:
                fields.append(name)
        if self.added_remote_ids:
            fields.append("remote_ids")
        if self.added_files:
            fields.append("files")
        return fields

    @property
    def is_empty(self) -> bool:
        return not self.changed_fields


class MergeOutcome(BaseModel):
    """
    Result of reconciling two transactions.

    survivor_id and retired_id always partition the input pair.
    audit_note is only set under AmountPolicy.AUDIT, when both amounts
    were present and different.
    """
    model_config = ConfigDict(frozen=True)

    survivor_id: str
    retired_id: str
    merged: Transaction
    audit_note: Optional[str] = None
    changes: TransactionChanges = Field(default_factory=TransactionChanges)

    @model_validator(mode="after")
    def validate_partition(self) -> "MergeOutcome":
        if self.survivor_id == self.retired_id:
            raise ValueError("Survivor and retired transaction must differ")
        if self.merged.id != self.survivor_id:
            raise ValueError("Merged transaction must keep the survivor id")
        return self

    def to_response(self) -> dict[str, Any]:
        return {
            "mergedTransaction": self.merged.to_response(),
            "revertedTransactionId": self.retired_id,
            "auditRecord": self.audit_note,
        }


class MergeResult(BaseModel):
    """
    What the merge flow reports back once every write went through.

    merged_transaction is the survivor as returned by the backend after
    the update. audit_transaction is the created audit record, if any.
    """
    model_config = ConfigDict(frozen=True)

    merged_transaction: Transaction
    reverted_transaction_id: str
    audit_record: Optional[str] = None
    audit_transaction: Optional[Transaction] = None
    changed_fields: list[str] = Field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        return {
            "mergedTransaction": self.merged_transaction.to_response(),
            "revertedTransactionId": self.reverted_transaction_id,
            "auditRecord": self.audit_record,
        }
