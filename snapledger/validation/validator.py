"""
Draft Review

DESIGN DECISION: A draft is reviewed in two stages before the user sees it.

STAGE 1 - COMPLETENESS:
- Store name present and not the "Unknown Store" placeholder
- Amount not zero
- This flags the fields the user has to fill in by hand

STAGE 2 - PLAUSIBILITY:
- Future date detection
- Very old date detection
- Absurd amount detection
- Store name sanity
- Duplicate detection against the ledger

IMPORTANT: Review NEVER changes the draft and never blocks it.
Every issue is a warning shown next to the form; the user decides.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional

from snapledger.config import AppSettings, get_settings
from snapledger.models.receipt import (
    UNKNOWN_STORE,
    Expense,
    ReceiptData,
    ValidationIssue,
    ValidationResult,
)


class ReceiptValidator:
    """
    Reviews drafts and reports issues for the user.

    Stage 1 and 2 need only the draft; duplicate detection also needs
    the current ledger.
    """

    def __init__(
        self,
        ledger: Optional[Callable[[], Iterable[Expense]]] = None,
        settings: Optional[AppSettings] = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Args:
            ledger: Returns the current expenses for duplicate checks.
                    If None, duplicate checking is skipped.
            settings: Thresholds (loaded from the environment if None)
            today: Source of the current date
        """
        self._ledger = ledger
        self._settings = settings or get_settings().app
        self._today = today

    def _check_completeness(self, data: ReceiptData) -> list[ValidationIssue]:
        issues = []

        if not data.store_name:
            issues.append(ValidationIssue(
                field="store_name",
                issue_type="missing",
                message="Store name is empty",
                severity="warning",
                suggested_fix="Enter the store name from the receipt",
            ))
        elif data.store_name == UNKNOWN_STORE:
            issues.append(ValidationIssue(
                field="store_name",
                issue_type="placeholder",
                message="Store name could not be read from the receipt",
                severity="warning",
                suggested_fix="Replace it with the actual store name",
            ))

        if data.amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="zero_amount",
                message="Amount is zero",
                severity="warning",
                suggested_fix="Enter the total shown on the receipt",
            ))

        return issues

    def _check_plausibility(self, data: ReceiptData) -> list[ValidationIssue]:
        issues = []
        today = self._today()

        # Future date check (with tolerance)
        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if data.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({data.date.isoformat()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        # Very old date check (might be a misread year)
        min_reasonable_date = today - timedelta(days=365 * 2)
        if data.date < min_reasonable_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Date ({data.date.isoformat()}) seems unusually old",
                severity="warning",
                suggested_fix="Please verify the year was read correctly",
            ))

        max_amount = Decimal(str(self._settings.max_expense_amount))
        if data.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({data.amount:,}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        # Store name sanity (not just numbers/symbols)
        name = data.store_name
        if name and name != UNKNOWN_STORE:
            alpha_count = sum(1 for c in name if c.isalpha())
            if alpha_count / len(name) < 0.3:
                issues.append(ValidationIssue(
                    field="store_name",
                    issue_type="suspicious_value",
                    message="Store name looks unusual (too many numbers/symbols)",
                    severity="warning",
                    suggested_fix="Please verify the store name",
                ))

        return issues

    def _check_duplicates(self, data: ReceiptData) -> list[ValidationIssue]:
        if self._ledger is None or not data.store_name or data.amount == 0:
            return []

        for expense in self._ledger():
            if (
                expense.date == data.date
                and expense.amount == data.amount
                and expense.store_name.casefold() == data.store_name.casefold()
            ):
                return [ValidationIssue(
                    field="duplicate",
                    issue_type="possible_duplicate",
                    message=(
                        f"An expense from {expense.store_name} on "
                        f"{expense.date.isoformat()} for {expense.amount} already exists"
                    ),
                    severity="warning",
                    suggested_fix="Please verify this isn't the same receipt twice",
                )]
        return []

    def review(self, data: ReceiptData) -> ValidationResult:
        """
        Run both review stages and the duplicate check.

        Returns:
            ValidationResult with every issue found
        """
        issues = self._check_completeness(data)
        issues.extend(self._check_plausibility(data))
        issues.extend(self._check_duplicates(data))
        return ValidationResult(issues=issues)

    @staticmethod
    def get_user_friendly_summary(result: ValidationResult) -> str:
        """
        Short text for the review form.
        """
        if not result.issues:
            return "Please review the details below and save."

        lines = ["Please check the following:"]
        for issue in result.issues:
            lines.append(f"  - {issue.message}")
            if issue.suggested_fix:
                lines.append(f"    ({issue.suggested_fix})")
        return "\n".join(lines)
