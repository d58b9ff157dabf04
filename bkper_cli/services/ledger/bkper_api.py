"""
Bkper REST API Backend

DESIGN DECISION: We talk to the Bkper REST API (v5) directly with httpx
instead of going through a generated SDK:
1. The CLI needs only a handful of endpoints
2. httpx gives us an async client with pluggable transports, so tests
   run against httpx.MockTransport without any network
3. Retries stay under our control (tenacity)

TRADEOFFS:
- Payload shapes are maintained by hand in bkper_cli.models
- Only transient failures are retried (network errors, 429, 502-504);
  4xx answers are reported immediately
- POST (create) is retried only when the server cannot have acted on
  it (connection never established, or 429); anything else could
  create a duplicate transaction
"""

from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from bkper_cli.config import BkperSettings, get_settings
from bkper_cli.models.book import Book
from bkper_cli.models.transaction import Transaction
from bkper_cli.services.ledger.interface import (
    AuthenticationError,
    BackendError,
    LedgerBackendInterface,
    NotFoundError,
)


RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})

# Trashing and updating converge to the same state when repeated;
# creating does not
IDEMPOTENT_METHODS = frozenset({"GET", "PUT", "PATCH", "DELETE"})


class TransientBackendError(BackendError):
    """A failure worth retrying (network hiccup, rate limit, gateway error)."""
    pass


def _error_message(response: httpx.Response) -> str:
    """Extract the error message from a Bkper error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return response.reason_phrase


class BkperApiClient:
    """
    Low-level Bkper REST client.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(
        self,
        settings: Optional[BkperSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or get_settings().bkper
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            params = {"key": self._settings.api_key} if self._settings.api_key else None
            self._client = httpx.AsyncClient(
                base_url=self._settings.api_url,
                headers={
                    "Authorization": f"Bearer {self._settings.access_token}",
                    "Accept": "application/json",
                },
                params=params,
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    @retry(
        retry=retry_if_exception_type(TransientBackendError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _send(
        self,
        method: str,
        path: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        idempotent = method in IDEMPOTENT_METHODS
        try:
            response = await self._get_client().request(method, path, json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            # Never reached the server: safe to resend any method
            raise TransientBackendError(f"Bkper API unreachable: {e}") from e
        except httpx.TransportError as e:
            if idempotent:
                raise TransientBackendError(f"Bkper API unreachable: {e}") from e
            # The server may have applied the request; resending could duplicate it
            raise BackendError(f"Bkper API request failed, not retried: {method} {path}: {e}") from e

        if response.status_code == 429 or (
            idempotent and response.status_code in RETRYABLE_STATUS_CODES
        ):
            raise TransientBackendError(
                f"Bkper API temporarily unavailable ({response.status_code})",
                status_code=response.status_code,
            )
        return response

    async def request(
        self,
        method: str,
        path: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Send a request and return the decoded JSON body.

        Raises:
            NotFoundError: 404
            AuthenticationError: 401 / 403
            BackendError: any other failure
        """
        response = await self._send(method, path, payload)

        if response.status_code == 404:
            raise NotFoundError(f"Not found: {method} {path}")
        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Bkper API refused the credentials ({response.status_code}): "
                f"{_error_message(response)}"
            )
        if response.is_error:
            raise BackendError(
                f"Bkper API error {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise BackendError(f"Invalid JSON from Bkper API: {method} {path}") from e
        if not isinstance(body, dict):
            raise BackendError(f"Unexpected response from Bkper API: {method} {path}")
        return body

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class BkperLedgerBackend(LedgerBackendInterface):
    """
    Ledger backend backed by the Bkper REST API.
    """

    def __init__(self, client: Optional[BkperApiClient] = None):
        self._client = client or BkperApiClient()

    @staticmethod
    def _book_path(book_id: str) -> str:
        return f"/v5/books/{quote(book_id, safe='')}"

    @staticmethod
    def _parse_transaction(payload: dict[str, Any]) -> Transaction:
        try:
            return Transaction.model_validate(payload)
        except ValidationError as e:
            raise BackendError(f"Malformed transaction from Bkper API: {e}") from e

    async def get_book(self, book_id: str) -> Optional[Book]:
        try:
            payload = await self._client.request("GET", self._book_path(book_id))
        except NotFoundError:
            return None
        try:
            return Book.model_validate(payload)
        except ValidationError as e:
            raise BackendError(f"Malformed book from Bkper API: {e}") from e

    async def get_transaction(
        self,
        book_id: str,
        transaction_id: str,
    ) -> Optional[Transaction]:
        path = f"{self._book_path(book_id)}/transactions/{quote(transaction_id, safe='')}"
        try:
            payload = await self._client.request("GET", path)
        except NotFoundError:
            return None
        if not payload:
            return None
        return self._parse_transaction(payload)

    async def update_transaction(
        self,
        book_id: str,
        transaction: Transaction,
    ) -> Transaction:
        payload = await self._client.request(
            "PUT",
            f"{self._book_path(book_id)}/transactions",
            transaction.to_payload(),
        )
        return self._parse_transaction(payload) if payload else transaction

    async def trash_transaction(
        self,
        book_id: str,
        transaction: Transaction,
    ) -> Transaction:
        payload = await self._client.request(
            "PATCH",
            f"{self._book_path(book_id)}/transactions/trash",
            transaction.to_payload(),
        )
        if payload:
            return self._parse_transaction(payload)
        return transaction.model_copy(update={"trashed": True})

    async def create_transaction(
        self,
        book_id: str,
        transaction: Transaction,
    ) -> Transaction:
        payload = await self._client.request(
            "POST",
            f"{self._book_path(book_id)}/transactions",
            transaction.to_payload(),
        )
        return self._parse_transaction(payload) if payload else transaction

    async def aclose(self) -> None:
        await self._client.aclose()
