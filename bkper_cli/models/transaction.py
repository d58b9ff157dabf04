"""
Transaction Models

These models mirror the Bkper transaction payload closely enough to
round-trip it through the REST API, while giving the rest of the code
proper Python types (Decimal amounts, real dates, typed accounts).

DESIGN DECISION: Transactions are immutable (frozen). The merge code
never edits a fetched transaction in place; it builds a new merged
value with model_copy() and hands that to the backend. This keeps the
inputs of a merge intact for auditing and retries.

DESIGN DECISION: Accounts have ONE canonical representation, the full
reference (id, name, type). Payloads that only carry creditAccountId /
debitAccountId are normalised into an Account with just the id, and the
id-only view is produced again at serialization time when asked for.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)


# Fields that are never part of a merge response: they describe who or
# what last touched the transaction, not the transaction itself.
VOLATILE_RESPONSE_FIELDS = frozenset({
    "agentId",
    "agentName",
    "agentLogo",
    "agentLogoDark",
    "createdAt",
    "createdBy",
    "updatedAt",
    "dateValue",
})


class Account(BaseModel):
    """Reference to a ledger account on either side of a transaction."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None


class TransactionFile(BaseModel):
    """
    A file attached to a transaction (receipt, invoice, statement line).

    Treated as an opaque blob descriptor: unknown keys are preserved so
    the backend gets back exactly what it sent.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    content_type: Optional[str] = Field(default=None, alias="contentType")
    url: Optional[str] = None
    size: Optional[int] = None


class Transaction(BaseModel):
    """
    A Bkper transaction.

    Built from the backend JSON payload (camelCase keys) or directly with
    Python field names. Payload keys without a field here (tags, draft,
    dateFormatted, agent data...) are kept as extras and sent back
    unchanged, so an update never strips data the CLI doesn't model.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="allow",
    )

    # Identity
    id: Optional[str] = None

    # Status
    posted: bool = Field(
        default=False,
        description="True once the transaction is finalized into the ledger"
    )
    checked: bool = False
    trashed: bool = False

    # Timestamps
    created_at: Optional[datetime] = Field(
        default=None,
        alias="createdAt",
        description="Creation time, used only to break ties between drafts"
    )
    transaction_date: Optional[date] = Field(
        default=None,
        alias="date",
        description="Date of the transaction (yyyy-MM-dd on the wire)"
    )

    # Content
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    credit_account: Optional[Account] = Field(default=None, alias="creditAccount")
    debit_account: Optional[Account] = Field(default=None, alias="debitAccount")

    # Metadata
    files: list[TransactionFile] = Field(
        default_factory=list,
        validation_alias=AliasChoices("files", "attachments"),
        serialization_alias="files",
    )
    remote_ids: list[str] = Field(default_factory=list, alias="remoteIds")
    urls: list[str] = Field(default_factory=list)
    properties: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def normalise_account_ids(cls, data: Any) -> Any:
        """Fold creditAccountId / debitAccountId into account references."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for side in ("credit", "debit"):
            id_key = f"{side}AccountId"
            ref_key = f"{side}Account"
            field_name = f"{side}_account"
            account_id = data.pop(id_key, None)
            if account_id and not data.get(ref_key) and not data.get(field_name):
                data[ref_key] = {"id": account_id}
        return data

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v: Any) -> Any:
        """Bkper sends createdAt as epoch milliseconds, often as a string."""
        if v in (None, ""):
            return None
        if isinstance(v, str) and v.isdigit():
            v = int(v)
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return datetime.fromtimestamp(v / 1000, tz=timezone.utc)
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> Any:
        """Amounts come as strings; blanks mean no amount."""
        if v is None:
            return None
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            try:
                v = Decimal(v)
            except InvalidOperation:
                raise ValueError(f"Invalid amount: {v!r}")
        elif isinstance(v, float):
            v = Decimal(str(v))
        if isinstance(v, Decimal) and not v.is_finite():
            raise ValueError(f"Invalid amount: {v}")
        return v

    @field_validator("remote_ids", "urls", mode="before")
    @classmethod
    def none_as_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("files", mode="before")
    @classmethod
    def none_as_no_files(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("properties", mode="before")
    @classmethod
    def none_as_empty_dict(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_serializer("created_at")
    def serialize_created_at(self, v: Optional[datetime]) -> Optional[str]:
        if v is None:
            return None
        return str(round(v.timestamp() * 1000))

    @field_serializer("amount")
    def serialize_amount(self, v: Optional[Decimal]) -> Optional[str]:
        if v is None:
            return None
        return f"{v:f}"

    def to_payload(self, id_only_accounts: bool = False) -> dict[str, Any]:
        """
        Convert to the Bkper wire format.

        Args:
            id_only_accounts: Also emit creditAccountId / debitAccountId,
                the id-only projection some consumers expect.
        """
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        if id_only_accounts:
            if self.credit_account and self.credit_account.id:
                payload["creditAccountId"] = self.credit_account.id
            if self.debit_account and self.debit_account.id:
                payload["debitAccountId"] = self.debit_account.id
        return payload

    def to_response(self) -> dict[str, Any]:
        """Payload as shown to CLI users and tool callers."""
        payload = self.to_payload(id_only_accounts=True)
        return {
            key: value
            for key, value in payload.items()
            if key not in VOLATILE_RESPONSE_FIELDS
        }
