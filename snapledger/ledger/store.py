"""
Ledger Store

The ordered, uniquely-keyed collection of finalized expenses.

DESIGN DECISION: Write-through. Every append/remove serializes the whole
collection and writes it through the persistence port before returning.
If the write fails the in-memory change is undone, so memory and disk
never disagree.

Order is insertion order, newest first. It has nothing to do with the
receipt dates, which only matter for monthly filtering.
"""

import json
import time
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional
from uuid import UUID, uuid4

from pydantic import TypeAdapter, ValidationError

from snapledger.audit import AuditLogger
from snapledger.ledger.events import ChangeNotifier, LedgerChange
from snapledger.models.receipt import Expense, ReceiptData
from snapledger.services.storage.interface import (
    CorruptLedgerError,
    RecordStorageInterface,
    StorageError,
)


_LEDGER_ADAPTER = TypeAdapter(list[Expense])

# Bounded so a broken id factory cannot spin forever
_MAX_ID_ATTEMPTS = 16


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def _random_id() -> str:
    return uuid4().hex


class LedgerStore:
    """
    Persisted expense ledger.

    Usage:
        store = LedgerStore(JsonFileStorage(".snapledger"))
        store.load()
        expense = store.append(receipt)
        store.remove(expense.id)
    """

    def __init__(
        self,
        storage: RecordStorageInterface,
        record_key: str = "expenses",
        on_corrupt: str = "reset",
        audit_logger: Optional[AuditLogger] = None,
        id_factory: Callable[[], str] = _random_id,
        clock: Callable[[], int] = _epoch_millis,
    ):
        if on_corrupt not in ("reset", "reject"):
            raise ValueError(f"on_corrupt must be 'reset' or 'reject', got {on_corrupt!r}")

        self._storage = storage
        self._record_key = record_key
        self._on_corrupt = on_corrupt
        self._audit_logger = audit_logger or AuditLogger()
        self._id_factory = id_factory
        self._clock = clock

        self._expenses: list[Expense] = []
        self._ids: set[str] = set()
        self._last_created_at = 0
        self._loaded = False

        self.changes: ChangeNotifier[LedgerChange] = ChangeNotifier()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def record_key(self) -> str:
        return self._record_key

    @property
    def expenses(self) -> tuple[Expense, ...]:
        """Snapshot of the ledger, newest first."""
        return tuple(self._expenses)

    def get(self, expense_id: str) -> Optional[Expense]:
        for expense in self._expenses:
            if expense.id == expense_id:
                return expense
        return None

    def __len__(self) -> int:
        return len(self._expenses)

    def __iter__(self) -> Iterator[Expense]:
        return iter(tuple(self._expenses))

    def __contains__(self, expense_id: object) -> bool:
        return expense_id in self._ids

    def subscribe(self, callback: Callable[[LedgerChange], None]) -> Callable[[], None]:
        return self.changes.subscribe(callback)

    def serialize(self) -> str:
        """The exact text written to storage for the current collection."""
        return json.dumps(
            [expense.to_wire() for expense in self._expenses],
            ensure_ascii=False,
        )

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self) -> list[Expense]:
        """
        Read the ledger from storage. Call once at startup.

        Returns:
            The loaded expenses, newest first (empty if nothing is stored)

        Raises:
            CorruptLedgerError: If the record is invalid and on_corrupt is 'reject'
            StorageError: If the backend cannot be read
        """
        try:
            text = self._storage.read(self._record_key)
            expenses = [] if text is None else self._parse(text)
        except CorruptLedgerError as e:
            if self._on_corrupt == "reject":
                self._audit_logger.log_error(
                    error_type="CorruptLedgerError",
                    error_message=e.reason,
                    details={"record_key": self._record_key},
                )
                raise
            expenses = self._reset(e)

        self._replace(expenses)
        self._loaded = True

        self._audit_logger.log_ledger_loaded(self._record_key, len(self._expenses))
        self.changes.publish(LedgerChange(kind="loaded", count=len(self._expenses)))
        return list(self._expenses)

    def _parse(self, text: str) -> list[Expense]:
        try:
            expenses = _LEDGER_ADAPTER.validate_json(text)
        except ValidationError as e:
            raise CorruptLedgerError(
                self._record_key,
                f"{e.error_count()} validation errors",
            ) from e

        seen: set[str] = set()
        for expense in expenses:
            if expense.id in seen:
                raise CorruptLedgerError(self._record_key, f"duplicate id {expense.id!r}")
            seen.add(expense.id)

        return expenses

    def _reset(self, error: CorruptLedgerError) -> list[Expense]:
        suffix = "corrupt-" + datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        backup_key = self._storage.backup(self._record_key, suffix)
        self._storage.write(self._record_key, "[]")
        self._audit_logger.log_ledger_reset(
            record_key=self._record_key,
            reason=error.reason,
            backup_key=backup_key,
        )
        return []

    def _replace(self, expenses: list[Expense]) -> None:
        self._expenses = list(expenses)
        self._ids = {expense.id for expense in expenses}
        self._last_created_at = max(
            (expense.created_at for expense in expenses),
            default=0,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise RuntimeError("Ledger has not been loaded; call load() first")

    def _new_id(self) -> str:
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = self._id_factory()
            if candidate and candidate not in self._ids:
                return candidate
        raise RuntimeError(
            f"Could not allocate a unique expense id after {_MAX_ID_ATTEMPTS} attempts"
        )

    def _next_created_at(self) -> int:
        # Strictly increasing even if the wall clock stalls or goes back
        return max(self._clock(), self._last_created_at + 1)

    def _persist(self, operation: str) -> None:
        try:
            self._storage.write(self._record_key, self.serialize())
        except StorageError as e:
            self._audit_logger.log_save_failed(operation, e)
            raise

    def append(
        self,
        data: ReceiptData,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Add a confirmed receipt to the head of the ledger.

        Args:
            data: The confirmed receipt data
            correlation_id: Capture this save belongs to, for the audit trail

        Returns:
            The new Expense with its id and creation time

        Raises:
            StorageError: If the write fails (the ledger is left unchanged)
        """
        self._require_loaded()

        expense = Expense.from_receipt(
            data,
            expense_id=self._new_id(),
            created_at=self._next_created_at(),
        )

        self._expenses.insert(0, expense)
        self._ids.add(expense.id)
        try:
            self._persist("append")
        except StorageError:
            self._expenses.pop(0)
            self._ids.discard(expense.id)
            raise

        self._last_created_at = expense.created_at
        self._audit_logger.log_expense_saved(expense, correlation_id=correlation_id)
        self.changes.publish(
            LedgerChange(kind="appended", expense=expense, count=len(self._expenses))
        )
        return expense

    def remove(self, expense_id: str) -> bool:
        """
        Delete an expense.

        Returns:
            True if an entry was deleted, False if the id was not present
            (a no-op, nothing is written)

        Raises:
            StorageError: If the write fails (the ledger is left unchanged)
        """
        self._require_loaded()

        if expense_id not in self._ids:
            return False

        index = next(i for i, e in enumerate(self._expenses) if e.id == expense_id)
        removed = self._expenses.pop(index)
        self._ids.discard(expense_id)
        try:
            self._persist("remove")
        except StorageError:
            self._expenses.insert(index, removed)
            self._ids.add(expense_id)
            raise

        self._audit_logger.log_expense_deleted(expense_id)
        self.changes.publish(
            LedgerChange(kind="removed", expense=removed, count=len(self._expenses))
        )
        return True
