"""
Shared fixtures.

No real API calls in tests: the Gemini model is replaced by
tests.fakes.FakeModel, and the ledger uses in-memory storage unless a
test needs real files.
"""

import itertools
from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from snapledger.config import AppSettings, GeminiSettings
from snapledger.ledger import LedgerStore
from snapledger.models.receipt import Expense, ReceiptData
from snapledger.services.storage import InMemoryStorage


TODAY = date(2024, 6, 15)


def _make_expense(
    amount,
    day: date,
    expense_id: Optional[str] = None,
    store_name: str = "Store",
    created_at: int = 1,
) -> Expense:
    return Expense(
        id=expense_id or f"{store_name}-{day.isoformat()}-{amount}",
        store_name=store_name,
        date=day,
        amount=Decimal(str(amount)),
        created_at=created_at,
    )


@pytest.fixture
def make_expense():
    """Factory for ledger entries with readable defaults."""
    return _make_expense


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def gemini_settings() -> GeminiSettings:
    return GeminiSettings(_env_file=None, api_key="test-key", extraction_timeout_seconds=5)


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(_env_file=None)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def ledger(storage) -> LedgerStore:
    """A loaded, empty ledger with deterministic ids and timestamps."""
    ids = (f"exp-{n}" for n in itertools.count(1))
    clock = itertools.count(1_700_000_000_000)
    store = LedgerStore(
        storage,
        id_factory=lambda: next(ids),
        clock=lambda: next(clock),
    )
    store.load()
    return store


@pytest.fixture
def receipt() -> ReceiptData:
    return ReceiptData(store_name="Lawson", date=date(2024, 5, 3), amount=Decimal("1200"))
