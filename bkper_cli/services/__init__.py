"""Services package."""

from bkper_cli.services.ledger import (
    AuthenticationError,
    BackendError,
    BkperApiClient,
    BkperLedgerBackend,
    InMemoryLedgerBackend,
    LedgerBackendInterface,
    LedgerError,
    NotFoundError,
    TransientBackendError,
)

__all__ = [
    # Ledger services
    "BkperApiClient",
    "BkperLedgerBackend",
    "InMemoryLedgerBackend",
    "LedgerBackendInterface",
    # Exceptions
    "AuthenticationError",
    "BackendError",
    "LedgerError",
    "NotFoundError",
    "TransientBackendError",
]
