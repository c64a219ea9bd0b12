"""
Tests for Expense Sync

Test strategy:
1. Unit tests for individual components (models, validators, parsers)
2. Integration tests for flows (with an in-memory remote store)
3. No real API calls in tests (use fakes and httpx.MockTransport)
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from pydantic import ValidationError

from expense_sync.models.transaction import (
    Transaction,
    TransactionType,
    transactions_to_wire,
)
from expense_sync.models.partner import (
    EmailValidationResult,
    LinkResult,
    PartnerLink,
    ShareResult,
)
from expense_sync.models.sync import RemoteFetch, SyncResult, SyncSource
from expense_sync.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestTransactionModel:
    """Tests for the Transaction model and its wire format."""

    def test_reads_wire_field_names(self):
        """Test that wire aliases populate the descriptive fields."""
        tx = Transaction.model_validate({
            "id": "a",
            "detail": "Coffee",
            "amount": 4.5,
            "type": "Cr",
            "status": "Cleared",
            "category": "Food",
            "date": "2024-03-01T10:00:00Z",
            "ownerEmail": "me@example.com",
        })
        assert tx.direction == TransactionType.CREDIT
        assert tx.is_credit
        assert tx.amount == Decimal("4.50")
        assert tx.occurred_at == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert tx.owner_email == "me@example.com"

    def test_accepts_python_field_names(self):
        """Test population by field name as well as alias."""
        tx = Transaction(id="a", direction=TransactionType.DEBIT, amount=Decimal("1"))
        assert tx.direction == TransactionType.DEBIT
        assert not tx.is_credit

    def test_defaults(self):
        """Test defaults for a minimal record."""
        tx = Transaction(id="a")
        assert tx.amount == Decimal("0.00")
        assert tx.direction == TransactionType.DEBIT
        assert tx.status == "Cleared"
        assert tx.category == "Uncategorized"
        assert tx.owner_email is None
        assert tx.occurred_at.tzinfo is not None

    def test_amount_quantized_to_two_places(self):
        """Test that amounts are rounded half-up to cents."""
        assert Transaction(id="a", amount=Decimal("10.005")).amount == Decimal("10.01")
        assert Transaction(id="a", amount=Decimal("7")).amount == Decimal("7.00")

    def test_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            Transaction(id="a", amount=Decimal("-1"))

    def test_oversized_amount_is_validation_error(self):
        """Test that an amount too large for cents fails validation, not arithmetic."""
        with pytest.raises(ValidationError):
            Transaction(id="a", amount=Decimal("1e30"))
        with pytest.raises(ValidationError):
            Transaction.model_validate({"id": "a", "amount": 1e30})

    def test_rejects_empty_id(self):
        """Test that the merge key cannot be empty."""
        with pytest.raises(ValueError):
            Transaction(id="")

    def test_naive_date_is_utc(self):
        """Test that naive timestamps are read as UTC."""
        tx = Transaction(id="a", occurred_at=datetime(2024, 1, 1, 8, 30))
        assert tx.occurred_at.tzinfo == timezone.utc

    def test_unknown_fields_ignored(self):
        """Test that extra keys in a document don't fail validation."""
        tx = Transaction.model_validate({"id": "a", "note": "extra"})
        assert tx.id == "a"

    def test_to_wire(self):
        """Test the JSON shape written to documents."""
        tx = Transaction(
            id="a",
            detail="Rent",
            amount=Decimal("1250"),
            direction=TransactionType.DEBIT,
            occurred_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        )
        wire = tx.to_wire()
        assert wire["type"] == "Db"
        assert wire["amount"] == 1250.0
        assert isinstance(wire["amount"], float)
        assert wire["date"].startswith("2024-03-01T00:00:00")
        assert "ownerEmail" not in wire

    def test_wire_round_trip_keeps_owner(self):
        """Test that ownerEmail survives a write and a read."""
        tx = Transaction(id="a", owner_email="p@example.com")
        again = Transaction.model_validate(tx.to_wire())
        assert again == tx
        assert transactions_to_wire([tx])[0]["ownerEmail"] == "p@example.com"

    def test_with_owner_only_fills_missing_owner(self):
        """Test that an existing owner is never replaced."""
        untagged = Transaction(id="a")
        tagged = untagged.with_owner("me@example.com")
        assert tagged.owner_email == "me@example.com"
        assert untagged.owner_email is None
        assert tagged.with_owner("other@example.com").owner_email == "me@example.com"


class TestPartnerModels:
    """Tests for partner-mode models."""

    def test_partner_link_defaults(self):
        """Test the disabled default state."""
        link = PartnerLink()
        assert link.enabled is False
        assert link.partner_email == ""
        assert link.partner_file_handle is None
        assert not link.is_active

    def test_partner_link_wire_names(self):
        """Test the persisted key names."""
        link = PartnerLink(
            enabled=True,
            partner_email="p@example.com",
            partner_file_handle="file-1",
            enabled_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        )
        wire = link.to_wire()
        assert wire["partnerEmail"] == "p@example.com"
        assert wire["partnerFileId"] == "file-1"
        assert "enabledAt" in wire
        assert PartnerLink.model_validate(wire) == link

    def test_enabled_without_email_is_not_active(self):
        """Test that an enabled flag alone doesn't activate partner mode."""
        assert not PartnerLink(enabled=True).is_active

    def test_result_models(self):
        """Test handshake and validation result defaults."""
        assert ShareResult(success=False, error="x").file_handle is None
        assert LinkResult(success=True, file_handle="h").exact_owner_match is False
        assert EmailValidationResult(is_valid=True).message is None


class TestSyncModels:
    """Tests for sync outcome models."""

    def test_remote_fetch_degraded(self):
        fetch = RemoteFetch.degraded("offline")
        assert not fetch.ok
        assert fetch.transactions == []
        assert fetch.reason == "offline"

    def test_sync_result_degraded_flags(self):
        """Test that either a fallback source or reasons mark a result degraded."""
        assert not SyncResult().degraded
        assert SyncResult(source=SyncSource.LOCAL_FALLBACK).degraded
        assert SyncResult(reasons=["read_own_file: offline"]).degraded

    def test_sync_result_total(self):
        result = SyncResult(transactions=[Transaction(id="a"), Transaction(id="b")])
        assert result.total == 2


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.SYNC_COMPLETED,
            description="Test event",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.PARTNER_LINKED,
            description="Test",
            entity_id="p@example.com",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "partner_linked"
        assert log_dict["entity_id"] == "p@example.com"

    def test_builder_sync_completed(self):
        """Test AuditEventBuilder.sync_completed."""
        event = AuditEventBuilder.sync_completed(
            own_count=3,
            partner_count=2,
            total=5,
            remote_written=True,
        )
        assert event.event_type == AuditEventType.SYNC_COMPLETED
        assert event.details["total"] == 5
        assert "3 own + 2 partner" in event.description

    def test_builder_partner_linked_unverified_is_warning(self):
        """Test that a fallback link is flagged as a warning."""
        exact = AuditEventBuilder.partner_linked("p@example.com", "h", exact_match=True)
        fallback = AuditEventBuilder.partner_linked("p@example.com", "h", exact_match=False)
        assert exact.severity == AuditSeverity.INFO
        assert fallback.severity == AuditSeverity.WARNING
        assert fallback.details["exact_owner_match"] is False

    def test_builder_sms_ignored_truncates_preview(self):
        """Test that message bodies are not stored whole in the audit log."""
        event = AuditEventBuilder.sms_ignored("x" * 200)
        assert len(event.details["preview"]) == 40

    def test_builder_system_error(self):
        """Test AuditEventBuilder.system_error."""
        event = AuditEventBuilder.system_error(
            error_type="TestError",
            error_message="Something went wrong",
        )
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
