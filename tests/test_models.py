"""
Tests for the Bkper CLI models

Test strategy:
1. Unit tests for individual components (models, formatting)
2. Integration tests for flows (with the in-memory ledger backend)
3. No real API calls in tests (httpx.MockTransport)
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from bkper_cli.models import (
    Account,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Book,
    DecimalSeparator,
    MergeOutcome,
    MergeResult,
    Transaction,
    TransactionChanges,
    TransactionFile,
)


class TestBookModel:
    """Tests for the Book model and its formatting rules."""

    def test_book_from_payload(self):
        """Test Book parses camelCase payloads and ignores unknown keys."""
        book = Book.model_validate({
            "id": "abc",
            "name": "Company",
            "fractionDigits": 0,
            "decimalSeparator": "COMMA",
            "datePattern": "MM/dd/yyyy",
            "permission": "OWNER",
        })
        assert book.id == "abc"
        assert book.fraction_digits == 0
        assert book.decimal_separator == DecimalSeparator.COMMA
        assert book.date_pattern == "MM/dd/yyyy"

    def test_book_defaults(self):
        """Test default formatting rules."""
        book = Book(id="abc")
        assert book.fraction_digits == 2
        assert book.decimal_separator == DecimalSeparator.DOT
        assert book.date_pattern == "dd/MM/yyyy"

    def test_book_requires_id(self):
        """Test that a book without id is rejected."""
        with pytest.raises(ValidationError):
            Book(id="")

    def test_format_value_dot(self):
        """Test values are padded to the book's fraction digits."""
        book = Book(id="abc")
        assert book.format_value(Decimal("20")) == "20.00"
        assert book.format_value(Decimal("1234.5")) == "1234.50"

    def test_format_value_comma(self):
        """Test the comma decimal separator."""
        book = Book(id="abc", decimalSeparator="COMMA")
        assert book.format_value(Decimal("1234.5")) == "1234,50"

    def test_format_value_rounds_half_up(self):
        """Test rounding to fewer fraction digits."""
        book = Book(id="abc", fractionDigits=0)
        assert book.format_value(Decimal("2.5")) == "3"
        assert book.format_value(Decimal("2.4")) == "2"

    def test_format_value_beyond_default_precision(self):
        """Test amounts with more than 28 digits are formatted, not rejected."""
        book = Book(id="abc")
        assert book.format_value(Decimal("12345678901234567890123456789")) == (
            "12345678901234567890123456789.00"
        )
        assert book.format_value(Decimal("99999999999999999999999999999.995")) == (
            "100000000000000000000000000000.00"
        )

    def test_format_date_patterns(self):
        """Test the supported date pattern tokens."""
        day = date(2018, 1, 25)
        assert Book(id="abc").format_date(day) == "25/01/2018"
        assert Book(id="abc", datePattern="MM/dd/yyyy").format_date(day) == "01/25/2018"
        assert Book(id="abc", datePattern="yyyy-MM-dd").format_date(day) == "2018-01-25"
        assert Book(id="abc", datePattern="dd/MM/yy").format_date(day) == "25/01/18"


class TestTransactionModel:
    """Tests for the Transaction model and its wire format."""

    PAYLOAD = {
        "id": "tx-1",
        "posted": True,
        "createdAt": "1516838400000",
        "date": "2018-01-25",
        "description": "DAS Simples",
        "amount": "100.50",
        "creditAccount": {"id": "acc-credit", "name": "Bank"},
        "debitAccountId": "acc-debit",
        "remoteIds": None,
        "attachments": [{"id": "f1", "contentType": "image/png", "checksum": "x1"}],
        "properties": {"tax": "das"},
        "agentId": "bank-sync",
    }

    def test_transaction_from_payload(self):
        """Test parsing of a backend payload."""
        tx = Transaction.model_validate(self.PAYLOAD)
        assert tx.id == "tx-1"
        assert tx.posted is True
        assert tx.created_at == datetime(2018, 1, 25, tzinfo=timezone.utc)
        assert tx.transaction_date == date(2018, 1, 25)
        assert tx.amount == Decimal("100.50")
        assert tx.credit_account == Account(id="acc-credit", name="Bank")
        assert tx.debit_account == Account(id="acc-debit")
        assert tx.remote_ids == []
        assert tx.urls == []
        assert tx.files[0].content_type == "image/png"
        assert tx.properties == {"tax": "das"}

    def test_blank_amount_is_no_amount(self):
        """Test that a blank amount string means no amount."""
        assert Transaction(amount="  ").amount is None
        assert Transaction().amount is None

    def test_invalid_amount_rejected(self):
        """Test that a non-numeric amount is rejected."""
        with pytest.raises(ValidationError):
            Transaction(amount="abc")

    def test_non_finite_amount_rejected(self):
        """Test that NaN / Infinity are not amounts."""
        for value in ("NaN", "Infinity", "-Infinity"):
            with pytest.raises(ValidationError):
                Transaction(amount=value)

    def test_unknown_keys_survive_round_trip(self):
        """Test payload keys without a field are sent back unchanged."""
        tx = Transaction.model_validate({
            "id": "tx-1",
            "description": "DAS",
            "tags": ["impostos"],
            "dateFormatted": "25/01/2018",
            "draft": True,
        })

        payload = tx.to_payload()

        assert payload["tags"] == ["impostos"]
        assert payload["dateFormatted"] == "25/01/2018"
        assert payload["draft"] is True
        edited = tx.model_copy(update={"description": "DAS Simples"}).to_payload()
        assert edited["tags"] == ["impostos"]

    def test_transaction_is_frozen(self):
        """Test that transactions cannot be edited in place."""
        tx = Transaction(id="tx-1", description="Original")
        with pytest.raises(ValidationError):
            tx.description = "Edited"

    def test_to_payload_uses_wire_names(self):
        """Test serialization back to the Bkper wire format."""
        payload = Transaction.model_validate(self.PAYLOAD).to_payload()
        assert payload["amount"] == "100.50"
        assert payload["createdAt"] == "1516838400000"
        assert payload["date"] == "2018-01-25"
        assert payload["remoteIds"] == []
        assert payload["creditAccount"]["id"] == "acc-credit"
        assert "creditAccountId" not in payload
        # Unknown file keys survive the round trip
        assert payload["files"][0]["checksum"] == "x1"
        assert payload["files"][0]["contentType"] == "image/png"

    def test_to_payload_id_only_accounts(self):
        """Test the id-only account projection."""
        payload = Transaction.model_validate(self.PAYLOAD).to_payload(id_only_accounts=True)
        assert payload["creditAccountId"] == "acc-credit"
        assert payload["debitAccountId"] == "acc-debit"

    def test_to_response_drops_volatile_fields(self):
        """Test that creation metadata is not part of the response."""
        tx = Transaction.model_validate(self.PAYLOAD)
        response = tx.to_response()
        assert "createdAt" not in response
        assert "agentId" not in response
        # Still sent to the backend, only hidden from the response
        assert tx.to_payload()["agentId"] == "bank-sync"
        assert response["id"] == "tx-1"
        assert response["creditAccountId"] == "acc-credit"

    def test_file_extra_keys_preserved(self):
        """Test TransactionFile keeps keys it doesn't model."""
        tx_file = TransactionFile.model_validate({"id": "f1", "checksum": "abc"})
        assert tx_file.model_dump()["checksum"] == "abc"


class TestMergeModels:
    """Tests for merge result models."""

    def test_changes_between(self):
        """Test the field-level diff."""
        before = Transaction(id="a", description="Rent", remote_ids=["r1"], urls=["u1"])
        after = before.model_copy(update={
            "description": "Rent March",
            "remote_ids": ["r1", "r2"],
            "files": [TransactionFile(id="f1")],
        })
        changes = TransactionChanges.between(before, after)
        assert changes.description == "Rent March"
        assert changes.urls is None
        assert changes.added_remote_ids == ["r2"]
        assert changes.changed_fields == ["description", "remote_ids", "files"]
        assert not changes.is_empty

    def test_changes_between_identical(self):
        """Test that identical transactions produce no changes."""
        tx = Transaction(id="a", description="Rent")
        assert TransactionChanges.between(tx, tx).is_empty

    def test_outcome_rejects_same_ids(self):
        """Test that survivor and retired must differ."""
        with pytest.raises(ValidationError):
            MergeOutcome(
                survivor_id="a",
                retired_id="a",
                merged=Transaction(id="a"),
            )

    def test_outcome_requires_survivor_id_on_merged(self):
        """Test that the merged transaction keeps the survivor id."""
        with pytest.raises(ValidationError):
            MergeOutcome(
                survivor_id="a",
                retired_id="b",
                merged=Transaction(id="b"),
            )

    def test_result_response_shape(self):
        """Test the response keys of a merge result."""
        result = MergeResult(
            merged_transaction=Transaction(id="a", description="Rent"),
            reverted_transaction_id="b",
        )
        response = result.to_response()
        assert set(response) == {"mergedTransaction", "revertedTransactionId", "auditRecord"}
        assert response["revertedTransactionId"] == "b"
        assert response["auditRecord"] is None


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.MERGE_REQUESTED,
            description="Merge requested",
        )
        assert event.event_type == AuditEventType.MERGE_REQUESTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_TRASHED,
            book_id="book-1",
            description="Transaction trashed",
            details={"reason": "merge"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_trashed"
        assert log_dict["book_id"] == "book-1"
        assert log_dict["details"]["reason"] == "merge"
        assert log_dict["correlation_id"] is None

    def test_audit_event_builder_merge_requested(self):
        """Test AuditEventBuilder.merge_requested."""
        correlation_id = uuid4()

        event = AuditEventBuilder.merge_requested(
            book_id="book-1",
            transaction_id1="a",
            transaction_id2="b",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.MERGE_REQUESTED
        assert event.entity_id == "book-1"
        assert event.correlation_id == correlation_id
        assert event.details["transaction_ids"] == ["a", "b"]

    def test_audit_event_builder_amount_conflict(self):
        """Test AuditEventBuilder.amount_conflict is a warning."""
        event = AuditEventBuilder.amount_conflict(
            book_id="book-1",
            survivor_amount="100.00",
            retired_amount="80.00",
            correlation_id=uuid4(),
        )

        assert event.event_type == AuditEventType.AMOUNT_CONFLICT
        assert event.severity == AuditSeverity.WARNING
        assert "100.00" in event.description
        assert "80.00" in event.description

    def test_audit_event_builder_system_error(self):
        """Test AuditEventBuilder.system_error is an error event."""
        correlation_id = uuid4()

        event = AuditEventBuilder.system_error(
            error_type="RuntimeError",
            error_message="unexpected",
            details={"book_id": "book-1"},
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "unexpected"
        assert event.details == {"book_id": "book-1"}
        assert event.correlation_id == correlation_id
