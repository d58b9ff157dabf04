"""
Transaction Merge Reconciliation

Combines two duplicate (or related) transactions into one:

1. ROLES - decide which transaction survives and which is retired
2. FIELDS - fuse description, files, remote ids, urls, properties,
   and backfill missing accounts
3. AMOUNT - resolve the amount, the one field where a silent change
   is never acceptable

DESIGN DECISION: This module is pure computation. It does no I/O,
never mutates its inputs and never logs. The caller fetches both
transactions, calls TransactionMerger.merge(), and persists the
outcome (trash the retired one, update the survivor, optionally
record the audit note).

CRITICAL: Amount conflicts are either refused (STRICT) or recorded as a
separate audit transaction (AUDIT). A differing amount is never
dropped without one of the two.
"""

import re
from datetime import datetime
from decimal import MAX_PREC, Decimal, localcontext
from typing import Optional, Sequence, TypeVar

from bkper_cli.models.book import Book
from bkper_cli.models.merge import AmountPolicy, MergeOutcome, TransactionChanges
from bkper_cli.models.transaction import Account, Transaction, TransactionFile


T = TypeVar("T")

WORD_SPLITTER = re.compile(r"[ \-_]+")
_WHITESPACE = re.compile(r"\s+")


class MergeError(Exception):
    """Base exception for merge errors."""
    pass


class InvalidMergeRequestError(MergeError):
    """The merge request itself is malformed (missing ids, unknown book...)."""

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        if len(self.errors) == 1:
            message = self.errors[0]
        else:
            message = "Validation failed:\n" + "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(message)


class TransactionNotFoundError(MergeError):
    """One or both transactions to merge do not exist."""

    def __init__(self, missing_ids: Sequence[str]):
        self.missing_ids = list(missing_ids)
        super().__init__(
            "\n".join(f"Transaction not found: {tx_id}" for tx_id in self.missing_ids)
        )


class AmountConflictError(MergeError):
    """Both transactions have amounts and they differ (STRICT policy)."""

    def __init__(self, survivor_amount: str, retired_amount: str):
        self.survivor_amount = survivor_amount
        self.retired_amount = retired_amount
        super().__init__(
            f"Cannot merge transactions with different amounts: "
            f"{survivor_amount} vs {retired_amount}. "
            f"Please reconcile amounts manually before merging."
        )


# =============================================================================
# ROLE SELECTION
# =============================================================================

def _created_key(transaction: Transaction) -> float:
    created_at: Optional[datetime] = transaction.created_at
    return created_at.timestamp() if created_at else float("-inf")


def select_roles(
    transaction1: Transaction,
    transaction2: Transaction,
) -> tuple[Transaction, Transaction]:
    """
    Decide which transaction survives.

    Rules:
    1. A posted transaction beats a draft.
    2. Otherwise the one created later survives. On equal creation
       times the first argument survives.

    Returns:
        (survivor, retired)
    """
    if transaction1.posted != transaction2.posted:
        if transaction1.posted:
            return transaction1, transaction2
        return transaction2, transaction1

    if _created_key(transaction1) < _created_key(transaction2):
        return transaction2, transaction1
    return transaction1, transaction2


# =============================================================================
# FIELD FUSION
# =============================================================================

def merge_description(
    survivor_description: Optional[str],
    retired_description: Optional[str],
) -> str:
    """
    Append the retired description's words the survivor doesn't mention.

    Words are split on spaces, hyphens and underscores. A word is
    considered already present if it appears anywhere in the survivor's
    text, case-insensitively, even inside another word.
    """
    if not survivor_description:
        return retired_description or ""
    if not retired_description:
        return survivor_description

    survivor_lower = survivor_description.lower()
    words = [word for word in WORD_SPLITTER.split(retired_description) if word]
    unique_words = [word for word in words if word.lower() not in survivor_lower]

    merged = f"{survivor_description} {' '.join(unique_words)}"
    return _WHITESPACE.sub(" ", merged).strip()


def merge_files(
    survivor_files: Sequence[TransactionFile],
    retired_files: Sequence[TransactionFile],
) -> list[TransactionFile]:
    """Survivor's files then retired's. Never deduplicated."""
    return [*survivor_files, *retired_files]


def merge_unique(survivor_values: Sequence[T], retired_values: Sequence[T]) -> list[T]:
    """Order-preserving union without duplicates."""
    return list(dict.fromkeys([*survivor_values, *retired_values]))


def merge_properties(
    survivor_properties: dict[str, str],
    retired_properties: dict[str, str],
) -> dict[str, str]:
    """
    Overlay the retired properties on the survivor's.

    NOTE: On key collisions the RETIRED value wins, even though the
    survivor wins everywhere else. Property edits on the retired side
    are treated as the latest intent for that key.
    """
    return {**survivor_properties, **retired_properties}


def backfill_account(
    survivor_account: Optional[Account],
    retired_account: Optional[Account],
) -> Optional[Account]:
    """Take the retired account only when the survivor has none."""
    return survivor_account if survivor_account is not None else retired_account


# =============================================================================
# AMOUNT RECONCILIATION
# =============================================================================

def build_audit_note(book: Book, retired: Transaction, difference: Decimal) -> str:
    """
    Audit note for an amount difference.

    Format: "<retired date> <difference> <retired description>", each
    part formatted with the book's rules. Missing parts are skipped.
    """
    parts = [
        book.format_date(retired.transaction_date) if retired.transaction_date else "",
        book.format_value(difference),
        retired.description or "",
    ]
    return " ".join(part for part in parts if part).strip()


def reconcile_amount(
    book: Book,
    survivor: Transaction,
    retired: Transaction,
    policy: AmountPolicy = AmountPolicy.STRICT,
) -> tuple[Optional[Decimal], Optional[str]]:
    """
    Resolve the merged amount.

    Returns:
        (amount, audit_note)

    Raises:
        AmountConflictError: amounts differ and policy is STRICT
    """
    survivor_amount = survivor.amount
    retired_amount = retired.amount

    if survivor_amount is None:
        # Backfill (or nothing at all on either side)
        return retired_amount, None

    if retired_amount is None or survivor_amount == retired_amount:
        return survivor_amount, None

    if policy == AmountPolicy.STRICT:
        raise AmountConflictError(
            survivor_amount=book.format_value(survivor_amount),
            retired_amount=book.format_value(retired_amount),
        )

    # Exact difference, whatever the number of digits
    with localcontext() as ctx:
        ctx.prec = MAX_PREC
        difference = abs(survivor_amount - retired_amount)
    return survivor_amount, build_audit_note(book, retired, difference)


# =============================================================================
# MERGER
# =============================================================================

class TransactionMerger:
    """
    Merges two transactions of the same book.

    Stateless apart from the configured amount policy, so one instance
    can serve any number of merges.
    """

    def __init__(self, amount_policy: AmountPolicy = AmountPolicy.STRICT):
        self._amount_policy = amount_policy

    @property
    def amount_policy(self) -> AmountPolicy:
        return self._amount_policy

    def merge(
        self,
        book: Book,
        transaction1: Optional[Transaction],
        transaction2: Optional[Transaction],
        transaction_ids: Optional[tuple[str, str]] = None,
    ) -> MergeOutcome:
        """
        Merge two transactions.

        Args:
            book: Book owning both transactions (formatting rules)
            transaction1, transaction2: The fetched transactions
            transaction_ids: Requested ids, used to name missing
                transactions in the error

        Raises:
            TransactionNotFoundError: a transaction is missing
            InvalidMergeRequestError: same transaction twice, or no id
            AmountConflictError: see reconcile_amount()
        """
        requested = transaction_ids or ("transaction1", "transaction2")
        missing = [
            requested_id
            for requested_id, transaction in zip(requested, (transaction1, transaction2))
            if transaction is None
        ]
        if missing:
            raise TransactionNotFoundError(missing)

        if not transaction1.id or not transaction2.id:
            raise InvalidMergeRequestError(["Transactions to merge must have an id"])
        if transaction1.id == transaction2.id:
            raise InvalidMergeRequestError(
                [f"Cannot merge a transaction with itself: {transaction1.id}"]
            )

        survivor, retired = select_roles(transaction1, transaction2)

        # Amount first: a STRICT conflict must fail before anything else
        amount, audit_note = reconcile_amount(book, survivor, retired, self._amount_policy)

        merged = survivor.model_copy(update={
            "description": merge_description(survivor.description, retired.description),
            "amount": amount,
            "files": merge_files(survivor.files, retired.files),
            "remote_ids": merge_unique(survivor.remote_ids, retired.remote_ids),
            "urls": merge_unique(survivor.urls, retired.urls),
            "properties": merge_properties(survivor.properties, retired.properties),
            "credit_account": backfill_account(survivor.credit_account, retired.credit_account),
            "debit_account": backfill_account(survivor.debit_account, retired.debit_account),
        })

        return MergeOutcome(
            survivor_id=survivor.id,
            retired_id=retired.id,
            merged=merged,
            audit_note=audit_note,
            changes=TransactionChanges.between(survivor, merged),
        )
