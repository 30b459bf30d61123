"""
Main Orchestrator for SnapLedger

This module ties together all the components and defines the
end-to-end flows for:
1. Capture (image → extraction → draft → review)
2. Confirmation (draft → ledger entry) or abandonment
3. Monthly navigation and summary

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only one extraction runs at a time
- Every capture ends in exactly one draft, whatever the extractor does
- Nothing reaches the ledger without an explicit confirm()
- Every step is audited
"""

from datetime import date
from typing import Callable, Literal, Optional
from uuid import UUID

from pydantic import BaseModel

from snapledger.audit import AuditLogger, configure_logging, create_correlation_id
from snapledger.config import Settings, get_settings
from snapledger.ledger import ChangeNotifier, LedgerChange, LedgerStore
from snapledger.models.month import MonthCursor
from snapledger.models.receipt import Draft, Expense, LoadingState, ReceiptData
from snapledger.models.summary import MonthlySummary
from snapledger.queries import summarize
from snapledger.services.extraction import (
    ExtractionError,
    FallbackPolicy,
    GeminiReceiptExtractor,
    ReceiptExtractionError,
)
from snapledger.services.storage import JsonFileStorage, RecordStorageInterface
from snapledger.validation import ReceiptValidator


class CaptureInProgressError(Exception):
    """A capture was requested while another one is still analyzing."""
    pass


class SessionChange(BaseModel):
    """Published by ExpenseSession when the visible state changes."""

    kind: Literal["cursor", "ledger"]
    cursor: MonthCursor
    ledger_change: Optional[LedgerChange] = None


class ExpenseSession:
    """
    The state a screen is rendered from: the ledger plus the month cursor.

    Reads (summary) are synchronous and always computed from the current
    ledger, so they can be called at any time, including while a capture
    is analyzing.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        cursor: Optional[MonthCursor] = None,
        today: Callable[[], date] = date.today,
    ):
        self._ledger = ledger
        self._cursor = cursor or MonthCursor.current(today())
        self.changes: ChangeNotifier[SessionChange] = ChangeNotifier()
        self._unsubscribe_ledger = ledger.subscribe(self._on_ledger_change)

    @property
    def ledger(self) -> LedgerStore:
        return self._ledger

    @property
    def cursor(self) -> MonthCursor:
        return self._cursor

    def subscribe(self, callback: Callable[[SessionChange], None]) -> Callable[[], None]:
        return self.changes.subscribe(callback)

    def close(self) -> None:
        """Stop listening to the ledger."""
        self._unsubscribe_ledger()

    def _on_ledger_change(self, change: LedgerChange) -> None:
        self.changes.publish(
            SessionChange(kind="ledger", cursor=self._cursor, ledger_change=change)
        )

    def _move_to(self, cursor: MonthCursor) -> None:
        if cursor == self._cursor:
            return
        self._cursor = cursor
        self.changes.publish(SessionChange(kind="cursor", cursor=cursor))

    # Navigation

    def next_month(self) -> MonthCursor:
        self._move_to(self._cursor.next())
        return self._cursor

    def previous_month(self) -> MonthCursor:
        self._move_to(self._cursor.previous())
        return self._cursor

    def go_to(self, cursor: MonthCursor) -> MonthCursor:
        self._move_to(cursor)
        return self._cursor

    # Reads

    def summary(self) -> MonthlySummary:
        """Expenses, total and trend for the month under the cursor."""
        return summarize(self._ledger.expenses, self._cursor)

    # Mutations

    def save(
        self,
        data: ReceiptData,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Append confirmed data to the ledger.

        If the new expense is dated outside the viewed month, the cursor
        jumps to the expense's month so the user sees what was saved.
        """
        expense = self._ledger.append(data, correlation_id=correlation_id)
        if not self._cursor.contains(expense.date):
            self._move_to(MonthCursor.containing(expense.date))
        return expense

    def delete(self, expense_id: str) -> bool:
        """
        Remove an expense. The caller has already asked the user.

        Returns False if there was nothing to delete.
        """
        return self._ledger.remove(expense_id)


class ReceiptCaptureFlow:
    """
    Orchestrates a receipt capture.

    Flow:
    1. Capture → guard on LoadingState, mark ANALYZING
    2. Extract → one call to the extraction port
    3. Fallback → any failure becomes an empty draft
    4. Review → issues attached to the draft
    5. Confirm or abandon → handled by the confirmation collaborator

    Human confirmation (step 5) is MANDATORY.
    The system NEVER auto-saves.
    """

    def __init__(
        self,
        session: ExpenseSession,
        extractor: Optional[GeminiReceiptExtractor] = None,
        fallback: Optional[FallbackPolicy] = None,
        validator: Optional[ReceiptValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._session = session
        self._extractor = extractor or GeminiReceiptExtractor()
        self._audit_logger = audit_logger or AuditLogger()
        self._fallback = fallback or FallbackPolicy(self._audit_logger)
        self._validator = validator or ReceiptValidator(
            ledger=lambda: session.ledger.expenses,
        )
        self._loading_state = LoadingState.IDLE

    @property
    def loading_state(self) -> LoadingState:
        return self._loading_state

    @property
    def can_capture(self) -> bool:
        return self._loading_state == LoadingState.IDLE

    @property
    def session(self) -> ExpenseSession:
        return self._session

    async def capture(
        self,
        image_bytes: bytes,
        mime_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> Draft:
        """
        Turn a receipt photo into a draft for the user to confirm.

        Returns:
            Exactly one Draft, from extraction or from the fallback policy

        Raises:
            CaptureInProgressError: If another capture is still analyzing
        """
        if self._loading_state != LoadingState.IDLE:
            raise CaptureInProgressError("A receipt is already being analyzed")

        self._loading_state = LoadingState.ANALYZING
        correlation_id = correlation_id or create_correlation_id()

        try:
            self._audit_logger.log_capture_started(
                mime_type=mime_type,
                size_bytes=len(image_bytes or b""),
                correlation_id=correlation_id,
            )

            notice = None
            try:
                data = await self._extractor.extract(image_bytes, mime_type)
                self._audit_logger.log_extraction_completed(data, correlation_id)
            except ReceiptExtractionError as e:
                data = self._fallback.on_failure(e, correlation_id=correlation_id)
                notice = self._fallback.notice_for(e)
            except Exception as e:
                # Extractor bug; still ends in a draft, but leave a trace
                self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                failure = ExtractionError(f"Unexpected extraction failure: {e}")
                data = self._fallback.on_failure(failure, correlation_id=correlation_id)
                notice = self._fallback.notice_for(failure)

            review = self._validator.review(data)
            draft = Draft(
                correlation_id=correlation_id,
                data=data,
                notice=notice,
                review=review,
            )
            self._audit_logger.log_draft_reviewed(
                draft_id=draft.draft_id,
                issues=[issue.model_dump() for issue in review.issues],
                correlation_id=correlation_id,
            )
            return draft
        finally:
            self._loading_state = LoadingState.IDLE

    def confirm(self, data: ReceiptData, draft: Optional[Draft] = None) -> Expense:
        """
        Save the data the user confirmed (possibly edited from the draft).

        CRITICAL: This is called ONLY after explicit user confirmation.
        """
        correlation_id = draft.correlation_id if draft else None
        return self._session.save(data, correlation_id=correlation_id)

    def abandon(self, draft: Draft) -> None:
        """
        Record that the user cancelled. The draft is discarded and the
        ledger is not touched.
        """
        self._audit_logger.log_draft_abandoned(
            draft_id=draft.draft_id,
            correlation_id=draft.correlation_id,
        )


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[RecordStorageInterface] = None,
) -> tuple[ReceiptCaptureFlow, ExpenseSession]:
    """
    Factory function to create all application components.

    Loads the ledger, so this is the process start-up step.

    Args:
        settings: Settings to use (environment if None)
        storage: Persistence backend (JSON files in the configured
                 data directory if None)

    Returns:
        (capture_flow, session)

    Raises:
        CorruptLedgerError: If the stored ledger is invalid and the
            ledger is configured to reject it
    """
    settings = settings or get_settings()
    app_settings = settings.app
    ledger_settings = settings.ledger

    configure_logging(app_settings.log_format, app_settings.debug_mode)
    audit_logger = AuditLogger()

    storage = storage or JsonFileStorage(ledger_settings.data_dir)
    ledger = LedgerStore(
        storage,
        record_key=ledger_settings.record_key,
        on_corrupt=ledger_settings.on_corrupt,
        audit_logger=audit_logger,
    )
    ledger.load()

    session = ExpenseSession(ledger)

    flow = ReceiptCaptureFlow(
        session=session,
        extractor=GeminiReceiptExtractor(settings.gemini, app_settings),
        fallback=FallbackPolicy(audit_logger),
        validator=ReceiptValidator(
            ledger=lambda: ledger.expenses,
            settings=app_settings,
        ),
        audit_logger=audit_logger,
    )

    return flow, session
