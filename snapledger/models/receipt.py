"""
Core Data Models for SnapLedger

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging

DESIGN DECISION: The wire format (extraction responses and the persisted
ledger) uses camelCase keys, the Python side uses snake_case. Aliases bridge
the two so nothing outside this module has to care.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictStr,
    field_serializer,
)


# Literal used when the store name on a receipt cannot be read
UNKNOWN_STORE = "Unknown Store"

# Amounts are written as JSON numbers. A float holds any decimal of up to
# 15 significant digits exactly, so these bounds keep save/reload lossless.
AMOUNT_MAX_DIGITS = 15
AMOUNT_DECIMAL_PLACES = 2


# =============================================================================
# ENUMS
# =============================================================================

class LoadingState(str, Enum):
    """
    Capture pipeline state.

    Process-local and never persisted. A new capture may only start
    from IDLE.
    """
    IDLE = "idle"
    ANALYZING = "analyzing"


# =============================================================================
# RECEIPT / EXPENSE
# =============================================================================

class ReceiptData(BaseModel):
    """
    A reading of a receipt: who, when, how much.

    Used both for unconfirmed drafts and for the confirmed data the user
    saves. Line items are deliberately not modelled.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    store_name: str = Field(
        default="",
        max_length=200,
        alias="storeName",
        description="Store or merchant name (may be empty on a draft)"
    )
    date: dt.date = Field(
        ...,
        description="Purchase date, YYYY-MM-DD on the wire"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        max_digits=AMOUNT_MAX_DIGITS,
        decimal_places=AMOUNT_DECIMAL_PLACES,
        description="Total amount paid"
    )

    @field_serializer("amount", when_used="json")
    def _amount_as_number(self, value: Decimal) -> Union[int, float]:
        # JSON numbers, not strings, so the stored ledger stays readable
        if value == value.to_integral_value():
            return int(value)
        return float(value)

    def to_wire(self) -> dict:
        """Serialize with camelCase keys and JSON-native values."""
        return self.model_dump(mode="json", by_alias=True)


class Expense(ReceiptData):
    """
    A finalized ledger entry.

    CRITICAL: Expenses are created ONLY by LedgerStore.append and are
    immutable. Editing an entry means removing it and appending a new one.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque id, unique within the ledger"
    )
    created_at: int = Field(
        ...,
        ge=0,
        alias="createdAt",
        description="Creation time in epoch milliseconds"
    )

    @classmethod
    def from_receipt(cls, data: ReceiptData, expense_id: str, created_at: int) -> "Expense":
        return cls(
            id=expense_id,
            store_name=data.store_name,
            date=data.date,
            amount=data.amount,
            created_at=created_at,
        )

    def receipt(self) -> ReceiptData:
        """The receipt part of this entry, without ledger identity."""
        return ReceiptData(
            store_name=self.store_name,
            date=self.date,
            amount=self.amount,
        )


class ExtractionResponse(BaseModel):
    """
    Schema of the JSON object returned by the extraction service.

    Strict on purpose: the service is told to return exactly this shape,
    so a string amount or a missing field is a failed extraction, not
    something to coerce.
    """
    model_config = ConfigDict(extra="ignore")

    storeName: StrictStr
    date: StrictStr = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    # StrictFloat still accepts JSON integers, but not strings or booleans
    amount: StrictFloat = Field(..., ge=0, allow_inf_nan=False)

    def to_receipt(self) -> ReceiptData:
        # date content (e.g. 2024-02-30) is checked here
        return ReceiptData(
            store_name=self.storeName,
            date=self.date,
            amount=Decimal(str(self.amount)),
        )


# Response schema sent with every extraction request (Gemini type names)
EXTRACTION_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "storeName": {
            "type": "STRING",
            "description": "The name of the store or merchant.",
        },
        "date": {
            "type": "STRING",
            "description": "The date of purchase in YYYY-MM-DD format.",
        },
        "amount": {
            "type": "NUMBER",
            "description": "The total amount of the purchase.",
        },
    },
    "required": ["storeName", "date", "amount"],
}


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single issue found while reviewing a draft."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'future_date', 'possible_duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of reviewing a draft.

    Issues are reported, never fixed. A draft with issues still goes to
    the user for confirmation.
    """

    validated_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc)
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def warnings(self) -> list[str]:
        """Messages of warning-level issues."""
        return [i.message for i in self.issues if i.severity == "warning"]


# =============================================================================
# DRAFT
# =============================================================================

class Draft(BaseModel):
    """
    What the confirmation collaborator receives after a capture.

    Every capture produces exactly one Draft, whether extraction worked or
    not. The draft does not record which of the two happened.
    """

    draft_id: UUID = Field(
        default_factory=uuid4,
        description="Draft identifier"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Capture this draft came from, for the audit trail"
    )
    data: ReceiptData
    notice: Optional[str] = Field(
        default=None,
        description="Message to show alongside the form"
    )
    review: ValidationResult = Field(default_factory=ValidationResult)
