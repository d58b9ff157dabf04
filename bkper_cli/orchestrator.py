"""
Main Orchestrator for the Bkper CLI

This module ties the merge reconciler to the ledger backend and defines
the end-to-end merge flow:

    ids → fetch book + both transactions → reconcile → trash retired
        → update survivor → (audit policy) create audit record

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written unless reconciliation fully succeeded
- The backend client is passed in explicitly, never looked up globally
- Every step is audited under one correlation id

KNOWN LIMITATION: The backend offers no multi-call transaction. If the
process dies between trashing the retired transaction and updating the
survivor, the book is left half merged. Both writes are idempotent, so
running the same merge again completes it.
"""

import asyncio
from typing import Optional
from uuid import UUID

from bkper_cli.audit import AuditLogger, create_correlation_id
from bkper_cli.config import get_settings
from bkper_cli.models.book import Book
from bkper_cli.models.merge import AmountPolicy, MergeOutcome, MergeResult
from bkper_cli.models.transaction import Transaction
from bkper_cli.reconciliation import (
    AmountConflictError,
    InvalidMergeRequestError,
    MergeError,
    TransactionMerger,
    TransactionNotFoundError,
)
from bkper_cli.services.ledger import (
    BkperLedgerBackend,
    LedgerBackendInterface,
    LedgerError,
)


class TransactionMergeFlow:
    """
    Orchestrates the transaction merge flow.

    Flow:
    1. Validate → book id and both transaction ids present and distinct
    2. Fetch → book and both transactions (concurrently)
    3. Reconcile → TransactionMerger decides roles and merged data
    4. Persist → trash retired, update survivor, create audit record

    Step 3 can refuse the merge (amount conflict); in that case step 4
    never starts.
    """

    def __init__(
        self,
        backend: LedgerBackendInterface,
        merger: Optional[TransactionMerger] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._backend = backend
        self._merger = merger or TransactionMerger()
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    @staticmethod
    def _validate_request(
        book_id: str,
        transaction_id1: str,
        transaction_id2: str,
    ) -> None:
        errors = []
        if not book_id:
            errors.append("Missing required parameter: bookId")
        if not transaction_id1:
            errors.append("Missing required parameter: transactionId1")
        if not transaction_id2:
            errors.append("Missing required parameter: transactionId2")
        if errors:
            raise InvalidMergeRequestError(errors)
        if transaction_id1 == transaction_id2:
            raise InvalidMergeRequestError(
                [f"Cannot merge a transaction with itself: {transaction_id1}"]
            )

    async def _fetch(
        self,
        book_id: str,
        transaction_id1: str,
        transaction_id2: str,
        correlation_id: UUID,
    ) -> tuple[Book, Transaction, Transaction]:
        fetches = [
            asyncio.ensure_future(self._backend.get_book(book_id)),
            asyncio.ensure_future(self._backend.get_transaction(book_id, transaction_id1)),
            asyncio.ensure_future(self._backend.get_transaction(book_id, transaction_id2)),
        ]
        try:
            try:
                book, transaction1, transaction2 = await asyncio.gather(*fetches)
            except BaseException:
                # One fetch failed: stop the others before the client is closed
                for fetch in fetches:
                    fetch.cancel()
                await asyncio.gather(*fetches, return_exceptions=True)
                raise
        except LedgerError as e:
            self._audit_logger.log_external_service_error(
                operation="fetch",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        if book is None:
            raise InvalidMergeRequestError([f"Book not found: {book_id}"])

        # Report every missing transaction at once
        missing = [
            transaction_id
            for transaction_id, transaction in (
                (transaction_id1, transaction1),
                (transaction_id2, transaction2),
            )
            if transaction is None
        ]
        if missing:
            raise TransactionNotFoundError(missing)

        return book, transaction1, transaction2

    def _reconcile(
        self,
        book: Book,
        transaction1: Transaction,
        transaction2: Transaction,
        correlation_id: UUID,
    ) -> MergeOutcome:
        try:
            outcome = self._merger.merge(
                book,
                transaction1,
                transaction2,
                transaction_ids=(transaction1.id, transaction2.id),
            )
        except AmountConflictError as e:
            self._audit_logger.log_amount_conflict(
                book_id=book.id,
                survivor_amount=e.survivor_amount,
                retired_amount=e.retired_amount,
                correlation_id=correlation_id,
            )
            raise

        self._audit_logger.log_roles_selected(
            book_id=book.id,
            survivor_id=outcome.survivor_id,
            retired_id=outcome.retired_id,
            correlation_id=correlation_id,
        )
        self._audit_logger.log_merge_reconciled(
            book_id=book.id,
            survivor_id=outcome.survivor_id,
            changed_fields=outcome.changes.changed_fields,
            audit_note=outcome.audit_note,
            correlation_id=correlation_id,
        )
        return outcome

    async def _persist(
        self,
        book_id: str,
        outcome: MergeOutcome,
        retired: Transaction,
        correlation_id: UUID,
    ) -> MergeResult:
        operation = "trash"
        try:
            await self._backend.trash_transaction(book_id, retired)
            self._audit_logger.log_transaction_trashed(
                book_id=book_id,
                transaction_id=retired.id,
                correlation_id=correlation_id,
            )

            operation = "update"
            updated = await self._backend.update_transaction(book_id, outcome.merged)
            self._audit_logger.log_transaction_updated(
                book_id=book_id,
                transaction_id=outcome.survivor_id,
                changed_fields=outcome.changes.changed_fields,
                correlation_id=correlation_id,
            )

            audit_transaction = None
            if outcome.audit_note:
                operation = "create_audit_record"
                audit_transaction = await self._backend.create_transaction(
                    book_id,
                    Transaction(description=outcome.audit_note),
                )
                self._audit_logger.log_audit_record_created(
                    book_id=book_id,
                    transaction_id=audit_transaction.id,
                    audit_note=outcome.audit_note,
                    correlation_id=correlation_id,
                )
        except LedgerError as e:
            self._audit_logger.log_external_service_error(
                operation=operation,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        return MergeResult(
            merged_transaction=updated,
            reverted_transaction_id=outcome.retired_id,
            audit_record=outcome.audit_note,
            audit_transaction=audit_transaction,
            changed_fields=outcome.changes.changed_fields,
        )

    async def merge_transactions(
        self,
        book_id: str,
        transaction_id1: str,
        transaction_id2: str,
        correlation_id: Optional[UUID] = None,
    ) -> MergeResult:
        """
        Merge two transactions of a book and persist the result.

        Returns:
            MergeResult with the updated survivor, the retired id and
            the audit note (audit policy only)

        Raises:
            InvalidMergeRequestError: missing/identical ids, unknown book
            TransactionNotFoundError: one or both transactions missing
            AmountConflictError: amounts differ under the strict policy
            LedgerError: backend failure, propagated unchanged
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            self._validate_request(book_id, transaction_id1, transaction_id2)
            self._audit_logger.log_merge_requested(
                book_id=book_id,
                transaction_id1=transaction_id1,
                transaction_id2=transaction_id2,
                correlation_id=correlation_id,
            )

            book, transaction1, transaction2 = await self._fetch(
                book_id, transaction_id1, transaction_id2, correlation_id
            )
            outcome = self._reconcile(book, transaction1, transaction2, correlation_id)
            retired = transaction1 if transaction1.id == outcome.retired_id else transaction2
            result = await self._persist(book_id, outcome, retired, correlation_id)
        except (MergeError, LedgerError) as e:
            self._audit_logger.log_merge_failed(
                book_id=book_id,
                error=e,
                correlation_id=correlation_id,
            )
            raise
        except Exception as e:
            self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"book_id": book_id, "stage": "merge_transactions"},
                correlation_id=correlation_id,
            )
            raise

        self._audit_logger.log_merge_completed(
            book_id=book_id,
            survivor_id=outcome.survivor_id,
            retired_id=outcome.retired_id,
            correlation_id=correlation_id,
        )
        return result


def create_app_components(
    backend: Optional[LedgerBackendInterface] = None,
    amount_policy: Optional[AmountPolicy] = None,
) -> tuple[TransactionMergeFlow, LedgerBackendInterface]:
    """
    Factory function to create all application components.

    Args:
        backend: Ledger backend to use. Defaults to the Bkper REST API,
                 configured from BKPER_* settings.
        amount_policy: Overrides the configured merge amount policy.

    Returns:
        (merge_flow, backend)
    """
    settings = get_settings()

    if backend is None:
        backend = BkperLedgerBackend()

    policy = amount_policy or settings.merge.amount_policy
    merge_flow = TransactionMergeFlow(
        backend=backend,
        merger=TransactionMerger(amount_policy=policy),
        audit_logger=AuditLogger(),
    )
    return merge_flow, backend
