"""
Tests for SnapLedger models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with faked external services)
3. No real API calls in tests
"""

import json
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from snapledger.models.receipt import (
    Draft,
    Expense,
    ExtractionResponse,
    LoadingState,
    ReceiptData,
    ValidationIssue,
    ValidationResult,
)
from snapledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestReceiptModels:
    """Tests for receipt and expense models."""

    def test_receipt_data_creation(self):
        """Test ReceiptData model creation."""
        data = ReceiptData(store_name="Lawson", date=date(2024, 5, 3), amount=Decimal("1200"))
        assert data.store_name == "Lawson"
        assert data.date == date(2024, 5, 3)
        assert data.amount == Decimal("1200")

    def test_receipt_data_accepts_wire_names(self):
        """Test that camelCase keys and ISO date strings are accepted."""
        data = ReceiptData.model_validate(
            {"storeName": "FamilyMart", "date": "2024-04-20", "amount": 800}
        )
        assert data.store_name == "FamilyMart"
        assert data.date == date(2024, 4, 20)

    def test_receipt_data_strips_whitespace(self):
        """Test that whitespace is stripped from store name."""
        data = ReceiptData(store_name="  Lawson  ", date=date(2024, 5, 3), amount=1)
        assert data.store_name == "Lawson"

    def test_receipt_data_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            ReceiptData(store_name="Test", date=date(2024, 5, 3), amount=Decimal("-1"))

    @pytest.mark.parametrize(
        "amount",
        ["0.1234567890123456789", "4.855", "12345678901234567", "1234567890123456"],
    )
    def test_amount_limited_to_what_json_numbers_hold(self, amount):
        """Test that amounts are limited to 2 decimal places and 15 digits."""
        with pytest.raises(ValidationError):
            ReceiptData(store_name="Test", date=date(2024, 5, 3), amount=Decimal(amount))

    def test_largest_amount_accepted(self):
        """Test the upper edge of the amount precision."""
        data = ReceiptData(store_name="Test", date=date(2024, 5, 3), amount=Decimal("1234567890123.45"))
        assert data.to_wire()["amount"] == 1234567890123.45

    def test_receipt_data_rejects_impossible_date(self):
        """Test that dates must be real calendar dates."""
        with pytest.raises(ValidationError):
            ReceiptData(store_name="Test", date="2024-02-30", amount=1)

    def test_empty_store_name_allowed_on_draft(self):
        """Test that the empty fallback draft is a valid ReceiptData."""
        data = ReceiptData(store_name="", date=date(2024, 5, 3), amount=0)
        assert data.store_name == ""
        assert data.amount == 0

    def test_receipt_data_is_immutable(self):
        """Test that receipt readings cannot be changed in place."""
        data = ReceiptData(store_name="Lawson", date=date(2024, 5, 3), amount=1)
        with pytest.raises(ValidationError):
            data.amount = Decimal("2")

    def test_to_wire_uses_camel_case_and_numbers(self):
        """Test the wire representation."""
        data = ReceiptData(store_name="Lawson", date=date(2024, 5, 3), amount=Decimal("1200"))
        assert data.to_wire() == {"storeName": "Lawson", "date": "2024-05-03", "amount": 1200}

    def test_to_wire_keeps_fractional_amounts(self):
        """Test that fractional amounts are written as JSON floats."""
        data = ReceiptData(store_name="Cafe", date=date(2024, 5, 3), amount=Decimal("4.85"))
        assert json.loads(json.dumps(data.to_wire()))["amount"] == 4.85

    def test_expense_from_receipt(self):
        """Test building an Expense from confirmed data."""
        data = ReceiptData(store_name="Lawson", date=date(2024, 5, 3), amount=Decimal("1200"))
        expense = Expense.from_receipt(data, expense_id="abc", created_at=42)

        assert expense.id == "abc"
        assert expense.created_at == 42
        assert expense.receipt() == data

    def test_expense_wire_format(self):
        """Test the persisted shape of an Expense."""
        expense = Expense(
            id="abc",
            store_name="Lawson",
            date=date(2024, 5, 3),
            amount=Decimal("1200"),
            created_at=42,
        )
        assert expense.to_wire() == {
            "id": "abc",
            "storeName": "Lawson",
            "date": "2024-05-03",
            "amount": 1200,
            "createdAt": 42,
        }

    def test_expense_requires_id(self):
        """Test that an Expense cannot have an empty id."""
        with pytest.raises(ValidationError):
            Expense(id="", store_name="x", date=date(2024, 5, 3), amount=1, created_at=1)

    def test_loading_state_values(self):
        """Test loading state string values."""
        assert LoadingState.IDLE.value == "idle"
        assert LoadingState.ANALYZING.value == "analyzing"


class TestExtractionResponse:
    """Tests for the strict extraction response schema."""

    def test_valid_response(self):
        """Test a well-formed response."""
        response = ExtractionResponse.model_validate_json(
            '{"storeName": "Lawson", "date": "2024-05-03", "amount": 1200}'
        )
        assert response.to_receipt() == ReceiptData(
            store_name="Lawson", date=date(2024, 5, 3), amount=Decimal("1200")
        )

    def test_float_amount_converted_exactly(self):
        """Test that float amounts become the decimal they print as."""
        response = ExtractionResponse.model_validate_json(
            '{"storeName": "Cafe", "date": "2024-05-03", "amount": 4.85}'
        )
        assert response.to_receipt().amount == Decimal("4.85")

    @pytest.mark.parametrize(
        "payload",
        [
            '{"date": "2024-05-03", "amount": 1}',
            '{"storeName": "x", "amount": 1}',
            '{"storeName": "x", "date": "2024-05-03"}',
            '{"storeName": "x", "date": "2024-05-03", "amount": "1200"}',
            '{"storeName": "x", "date": "2024-05-03", "amount": true}',
            '{"storeName": "x", "date": "05/03/2024", "amount": 1}',
            '{"storeName": 5, "date": "2024-05-03", "amount": 1}',
            '{"storeName": "x", "date": "2024-05-03", "amount": -5}',
            '["Lawson", "2024-05-03", 1200]',
        ],
    )
    def test_wrong_shapes_rejected(self, payload):
        """Test that anything but the declared shape fails validation."""
        with pytest.raises(ValidationError):
            ExtractionResponse.model_validate_json(payload)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.CAPTURE_STARTED,
            description="Test capture",
        )
        assert event.event_type == AuditEventType.CAPTURE_STARTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_SAVED,
            description="Expense saved",
            details={"store_name": "Lawson", "amount": "1200"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "expense_saved"
        assert log_dict["details"]["store_name"] == "Lawson"

    def test_builder_extraction_failed(self):
        """Test AuditEventBuilder.extraction_failed."""
        correlation_id = uuid4()
        event = AuditEventBuilder.extraction_failed(
            error=ValueError("bad json"),
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.EXTRACTION_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.error_type == "ValueError"
        assert event.error_message == "bad json"
        assert event.correlation_id == correlation_id

    def test_builder_expense_saved(self):
        """Test AuditEventBuilder.expense_saved."""
        event = AuditEventBuilder.expense_saved(
            expense_id="exp-1",
            store_name="Lawson",
            amount="1200",
        )
        assert event.event_type == AuditEventType.EXPENSE_SAVED
        assert event.entity_id == "exp-1"
        assert event.is_user_action is True

    def test_builder_ledger_reset_is_error(self):
        """Test that a ledger reset is logged at error severity."""
        event = AuditEventBuilder.ledger_reset(
            record_key="expenses",
            reason="3 validation errors",
            backup_key="expenses.corrupt-1",
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.details["backup_key"] == "expenses.corrupt-1"


class TestValidationResult:
    """Tests for ValidationResult and Draft."""

    def test_warnings_do_not_invalidate(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(issues=[
            ValidationIssue(
                field="amount",
                issue_type="zero_amount",
                message="Amount is zero",
                severity="warning",
            ),
        ])
        assert result.has_errors is False
        assert result.is_valid is True
        assert result.warnings == ["Amount is zero"]

    def test_errors_invalidate(self):
        """Test has_errors property."""
        result = ValidationResult(issues=[
            ValidationIssue(
                field="date",
                issue_type="invalid",
                message="Bad date",
                severity="error",
            ),
        ])
        assert result.has_errors is True
        assert result.is_valid is False

    def test_issue_severity_is_restricted(self):
        """Test that unknown severities are rejected."""
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")

    def test_draft_defaults(self):
        """Test that a draft starts with an empty review."""
        draft = Draft(data=ReceiptData(store_name="", date=date(2024, 5, 3), amount=0))
        assert draft.notice is None
        assert draft.review.issues == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
