"""
Abstract Ledger Backend Interface

DESIGN DECISION: We define an abstract interface for the ledger backend.
This allows us to:
1. Talk to the real Bkper REST API in production
2. Use in-memory storage for testing and offline runs
3. Keep merge logic decoupled from HTTP details

The interface is intentionally small - only the operations the CLI
needs for transactions and books.
"""

from abc import ABC, abstractmethod
from typing import Optional

from bkper_cli.models.book import Book
from bkper_cli.models.transaction import Transaction


class LedgerBackendInterface(ABC):
    """
    Abstract interface for ledger operations.

    Any backend implementation (REST API, in-memory, ...) must
    implement these methods.
    """

    @abstractmethod
    async def get_book(self, book_id: str) -> Optional[Book]:
        """
        Retrieve a book by its ID.

        Returns:
            The book if found, None otherwise

        Raises:
            BackendError: If the backend could not be reached
        """
        pass

    @abstractmethod
    async def get_transaction(
        self,
        book_id: str,
        transaction_id: str,
    ) -> Optional[Transaction]:
        """
        Retrieve a transaction by its ID.

        Args:
            book_id: Book owning the transaction
            transaction_id: The transaction's identifier

        Returns:
            The transaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_transaction(
        self,
        book_id: str,
        transaction: Transaction,
    ) -> Transaction:
        """
        Replace a transaction's content with the given value.

        Returns:
            The transaction as stored by the backend

        Raises:
            NotFoundError: If the transaction doesn't exist
            BackendError: If the update fails
        """
        pass

    @abstractmethod
    async def trash_transaction(
        self,
        book_id: str,
        transaction: Transaction,
    ) -> Transaction:
        """
        Move a transaction to the trash.

        Trashing an already trashed transaction is a no-op.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        pass

    @abstractmethod
    async def create_transaction(
        self,
        book_id: str,
        transaction: Transaction,
    ) -> Transaction:
        """
        Create a new (draft) transaction.

        Returns:
            The created transaction, with its new id
        """
        pass

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""
        return None


class LedgerError(Exception):
    """Base exception for ledger backend operations."""
    pass


class NotFoundError(LedgerError):
    """Entity not found in the ledger."""
    pass


class AuthenticationError(LedgerError):
    """Credentials missing, expired or lacking permission."""
    pass


class BackendError(LedgerError):
    """Could not reach the backend, or it answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
