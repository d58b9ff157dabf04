"""
In-Memory Ledger Backend

Dict-backed implementation of LedgerBackendInterface. Used by the test
suite and for dry runs: it behaves like the API for the operations the
CLI uses, and remembers every write in order.
"""

from typing import Iterable, Optional
from uuid import uuid4

from bkper_cli.models.book import Book
from bkper_cli.models.transaction import Transaction
from bkper_cli.services.ledger.interface import LedgerBackendInterface, NotFoundError


class InMemoryLedgerBackend(LedgerBackendInterface):
    """
    Ledger kept in process memory.

    Attributes:
        writes: (operation, book_id, transaction_id) for every write,
            in the order they happened
    """

    def __init__(
        self,
        books: Iterable[Book] = (),
        transactions: Optional[dict[str, Iterable[Transaction]]] = None,
    ):
        self._books: dict[str, Book] = {book.id: book for book in books}
        self._transactions: dict[str, dict[str, Transaction]] = {}
        for book_id, book_transactions in (transactions or {}).items():
            for transaction in book_transactions:
                self.add_transaction(book_id, transaction)
        self.writes: list[tuple[str, str, str]] = []

    def add_transaction(self, book_id: str, transaction: Transaction) -> Transaction:
        if not transaction.id:
            transaction = transaction.model_copy(update={"id": uuid4().hex})
        self._transactions.setdefault(book_id, {})[transaction.id] = transaction
        return transaction

    def stored(self, book_id: str, transaction_id: str) -> Optional[Transaction]:
        """Current stored value, trashed or not."""
        return self._transactions.get(book_id, {}).get(transaction_id)

    def _require(self, book_id: str, transaction: Transaction) -> Transaction:
        existing = self.stored(book_id, transaction.id) if transaction.id else None
        if existing is None:
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        return existing

    async def get_book(self, book_id: str) -> Optional[Book]:
        return self._books.get(book_id)

    async def get_transaction(
        self,
        book_id: str,
        transaction_id: str,
    ) -> Optional[Transaction]:
        return self.stored(book_id, transaction_id)

    async def update_transaction(
        self,
        book_id: str,
        transaction: Transaction,
    ) -> Transaction:
        self._require(book_id, transaction)
        self._transactions[book_id][transaction.id] = transaction
        self.writes.append(("update", book_id, transaction.id))
        return transaction

    async def trash_transaction(
        self,
        book_id: str,
        transaction: Transaction,
    ) -> Transaction:
        existing = self._require(book_id, transaction)
        trashed = existing.model_copy(update={"trashed": True})
        self._transactions[book_id][transaction.id] = trashed
        self.writes.append(("trash", book_id, transaction.id))
        return trashed

    async def create_transaction(
        self,
        book_id: str,
        transaction: Transaction,
    ) -> Transaction:
        created = self.add_transaction(book_id, transaction)
        self.writes.append(("create", book_id, created.id))
        return created
