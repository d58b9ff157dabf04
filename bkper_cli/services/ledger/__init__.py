"""
Ledger Services Package

Provides the abstract ledger backend interface and its implementations:
the Bkper REST API backend and an in-memory backend.
"""

from bkper_cli.services.ledger.interface import (
    AuthenticationError,
    BackendError,
    LedgerBackendInterface,
    LedgerError,
    NotFoundError,
)
from bkper_cli.services.ledger.bkper_api import (
    BkperApiClient,
    BkperLedgerBackend,
    TransientBackendError,
)
from bkper_cli.services.ledger.memory import InMemoryLedgerBackend

__all__ = [
    # Interface
    "LedgerBackendInterface",
    # Exceptions
    "AuthenticationError",
    "BackendError",
    "LedgerError",
    "NotFoundError",
    "TransientBackendError",
    # Implementations
    "BkperApiClient",
    "BkperLedgerBackend",
    "InMemoryLedgerBackend",
]
