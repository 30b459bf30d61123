"""
Tests for the write-through ledger store.
"""

import itertools
import json
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from snapledger.ledger import LedgerStore
from snapledger.models.receipt import ReceiptData
from snapledger.services.storage import (
    CorruptLedgerError,
    InMemoryStorage,
    JsonFileStorage,
    PersistenceWriteError,
    StorageError,
)


def lawson(day=date(2024, 5, 3), amount="1200") -> ReceiptData:
    return ReceiptData(store_name="Lawson", date=day, amount=Decimal(amount))


class TestLoad:
    """Tests for reading the ledger at startup."""

    def test_missing_record_is_empty(self, storage):
        """Test that a first run starts with an empty ledger."""
        store = LedgerStore(storage)
        assert store.load() == []
        assert len(store) == 0
        assert storage.write_count == 0

    def test_loads_stored_expenses_in_order(self):
        """Test that stored order is kept."""
        records = {"expenses": json.dumps([
            {"id": "b", "storeName": "Lawson", "date": "2024-05-03", "amount": 1200, "createdAt": 2},
            {"id": "a", "storeName": "FamilyMart", "date": "2024-04-20", "amount": 800, "createdAt": 1},
        ])}
        store = LedgerStore(InMemoryStorage(records))
        loaded = store.load()

        assert [e.id for e in loaded] == ["b", "a"]
        assert loaded[0].amount == Decimal("1200")
        assert "a" in store
        assert store.get("a").store_name == "FamilyMart"

    @pytest.mark.parametrize(
        "text",
        [
            "not json",
            '{"id": "a"}',
            '[{"id": "a", "storeName": "x", "date": "2024-05-03"}]',
            '[{"id": "a", "storeName": "x", "date": "2024-02-30", "amount": 1, "createdAt": 1}]',
            '[{"id": "a", "storeName": "x", "date": "2024-05-03", "amount": -1, "createdAt": 1}]',
            '[{"id": "", "storeName": "x", "date": "2024-05-03", "amount": 1, "createdAt": 1}]',
        ],
    )
    def test_corrupt_record_is_reset(self, text):
        """Test that an invalid record is backed up and replaced by an empty ledger."""
        storage = InMemoryStorage({"expenses": text})
        store = LedgerStore(storage)

        assert store.load() == []
        assert storage.records["expenses"] == "[]"
        backups = [k for k in storage.records if k.startswith("expenses.corrupt-")]
        assert len(backups) == 1
        assert storage.records[backups[0]] == text

    def test_duplicate_ids_are_corrupt(self):
        """Test that a ledger with repeated ids is not accepted."""
        entry = {"id": "a", "storeName": "x", "date": "2024-05-03", "amount": 1, "createdAt": 1}
        storage = InMemoryStorage({"expenses": json.dumps([entry, entry])})

        with pytest.raises(CorruptLedgerError) as exc_info:
            LedgerStore(storage, on_corrupt="reject").load()
        assert "duplicate id" in exc_info.value.reason

    def test_corrupt_record_rejected(self):
        """Test the reject policy leaves the stored text alone."""
        storage = InMemoryStorage({"expenses": "not json"})
        store = LedgerStore(storage, on_corrupt="reject")

        with pytest.raises(CorruptLedgerError):
            store.load()
        assert storage.records == {"expenses": "not json"}

    def test_invalid_policy(self, storage):
        """Test that unknown corruption policies are refused."""
        with pytest.raises(ValueError):
            LedgerStore(storage, on_corrupt="ignore")

    def test_undecodable_file_is_reset(self, tmp_path):
        """Test that a ledger file that is not UTF-8 is backed up and replaced."""
        (tmp_path / "expenses.json").write_bytes(b"[\xff\xfe]")
        storage = JsonFileStorage(tmp_path)

        assert LedgerStore(storage).load() == []
        assert storage.read("expenses") == "[]"
        backups = list(tmp_path.glob("expenses.corrupt-*.json"))
        assert len(backups) == 1
        assert backups[0].read_bytes() == b"[\xff\xfe]"

    def test_undecodable_file_rejected(self, tmp_path):
        """Test that the reject policy also covers undecodable files."""
        (tmp_path / "expenses.json").write_bytes(b"[\xff\xfe]")

        with pytest.raises(CorruptLedgerError):
            LedgerStore(JsonFileStorage(tmp_path), on_corrupt="reject").load()
        assert (tmp_path / "expenses.json").read_bytes() == b"[\xff\xfe]"

    def test_mutation_before_load(self, storage):
        """Test that append/remove require a loaded ledger."""
        store = LedgerStore(storage)
        with pytest.raises(RuntimeError):
            store.append(lawson())
        with pytest.raises(RuntimeError):
            store.remove("a")


class TestAppend:
    """Tests for adding expenses."""

    def test_append_assigns_id_and_time(self, ledger):
        """Test that a new expense gets an id and creation time."""
        expense = ledger.append(lawson())
        assert expense.id == "exp-1"
        assert expense.created_at == 1_700_000_000_000
        assert expense.receipt() == lawson()

    def test_newest_first(self, ledger):
        """Test that the ledger is ordered by insertion, newest first."""
        first = ledger.append(lawson(day=date(2024, 5, 20)))
        second = ledger.append(lawson(day=date(2024, 1, 1)))
        assert [e.id for e in ledger.expenses] == [second.id, first.id]

    def test_write_through(self, ledger, storage):
        """Test that storage holds exactly the serialized ledger after every append."""
        ledger.append(lawson())
        ledger.append(lawson(amount="4.85"))
        assert storage.records["expenses"] == ledger.serialize()
        assert [e["amount"] for e in json.loads(storage.records["expenses"])] == [4.85, 1200]

    def test_persist_then_reload_keeps_full_precision(self, ledger, storage):
        """Test that the largest accepted amount survives the JSON round trip."""
        expense = ledger.append(lawson(amount="1234567890123.45"))
        ledger.append(lawson(amount="0.01"))

        reloaded = LedgerStore(storage)
        reloaded.load()
        assert reloaded.get(expense.id).amount == Decimal("1234567890123.45")
        assert reloaded.expenses == ledger.expenses
        assert reloaded.serialize() == storage.records["expenses"]

    @pytest.mark.parametrize("amount", ["0.1234567890123456789", "12345678901234567"])
    def test_unrepresentable_amount_never_reaches_storage(self, ledger, storage, amount):
        """Test that amounts a JSON number cannot hold exactly are refused up front."""
        with pytest.raises(ValidationError):
            ledger.append(lawson(amount=amount))
        assert len(ledger) == 0
        assert "expenses" not in storage.records

    def test_persist_then_reload(self, ledger, storage):
        """Test that a fresh store reads back the same ledger."""
        ledger.append(lawson())
        ledger.append(lawson(day=date(2024, 4, 20), amount="800"))

        reloaded = LedgerStore(storage)
        reloaded.load()
        assert reloaded.expenses == ledger.expenses

    def test_ids_unique_under_collisions(self, storage):
        """Test that a colliding id is redrawn."""
        ids = iter(["a", "a", "b"])
        store = LedgerStore(storage, id_factory=lambda: next(ids))
        store.load()

        assert store.append(lawson()).id == "a"
        assert store.append(lawson()).id == "b"

    def test_id_factory_exhausted(self, storage):
        """Test that a factory that only repeats itself eventually fails."""
        store = LedgerStore(storage, id_factory=lambda: "same")
        store.load()
        store.append(lawson())

        with pytest.raises(RuntimeError):
            store.append(lawson())
        assert len(store) == 1

    def test_created_at_strictly_increasing(self, storage):
        """Test that a stalled clock still yields increasing timestamps."""
        store = LedgerStore(storage, clock=lambda: 1000)
        store.load()
        stamps = [store.append(lawson()).created_at for _ in range(3)]
        assert stamps == [1000, 1001, 1002]

    def test_created_at_continues_after_reload(self, storage):
        """Test monotonic timestamps across restarts with a clock behind the data."""
        store = LedgerStore(storage, clock=lambda: 5000)
        store.load()
        store.append(lawson())

        reloaded = LedgerStore(storage, clock=lambda: 10)
        reloaded.load()
        assert reloaded.append(lawson()).created_at == 5001

    def test_failed_write_rolls_back(self, ledger, storage):
        """Test that memory and storage stay equal when a write fails."""
        ledger.append(lawson())
        before = ledger.expenses
        stored = storage.records["expenses"]

        storage.fail_writes_with = OSError("disk full")
        with pytest.raises(PersistenceWriteError):
            ledger.append(lawson(amount="1"))

        assert ledger.expenses == before
        assert storage.records["expenses"] == stored

    def test_append_then_remove_restores(self, ledger):
        """Test that remove(append(x).id) gives back the original ledger."""
        ledger.append(lawson(amount="800"))
        before = ledger.expenses

        expense = ledger.append(lawson())
        assert ledger.remove(expense.id) is True
        assert ledger.expenses == before


class TestRemove:
    """Tests for deleting expenses."""

    def test_remove(self, ledger, storage):
        """Test removing an entry from the middle."""
        a = ledger.append(lawson(amount="1"))
        b = ledger.append(lawson(amount="2"))
        c = ledger.append(lawson(amount="3"))

        assert ledger.remove(b.id) is True
        assert [e.id for e in ledger.expenses] == [c.id, a.id]
        assert storage.records["expenses"] == ledger.serialize()

    def test_remove_absent_is_noop(self, ledger, storage):
        """Test that deleting an unknown id writes nothing."""
        ledger.append(lawson())
        writes = storage.write_count

        assert ledger.remove("nope") is False
        assert storage.write_count == writes
        assert len(ledger) == 1

    def test_failed_remove_rolls_back(self, ledger, storage):
        """Test that a failed delete keeps the entry in place."""
        a = ledger.append(lawson(amount="1"))
        ledger.append(lawson(amount="2"))
        before = ledger.expenses

        storage.fail_writes_with = OSError("read-only")
        with pytest.raises(StorageError):
            ledger.remove(a.id)

        assert ledger.expenses == before
        assert a.id in ledger


class TestNotifications:
    """Tests for change notifications."""

    def test_changes_published(self, storage):
        """Test the sequence of published changes."""
        clock = itertools.count(1)
        store = LedgerStore(storage, clock=lambda: next(clock))
        seen = []
        store.subscribe(seen.append)

        store.load()
        expense = store.append(lawson())
        store.remove(expense.id)
        store.remove(expense.id)

        assert [c.kind for c in seen] == ["loaded", "appended", "removed"]
        assert seen[1].expense == expense
        assert seen[2].count == 0

    def test_no_notification_on_failed_write(self, ledger, storage):
        """Test that rolled-back changes are not announced."""
        seen = []
        ledger.subscribe(seen.append)
        storage.fail_writes_with = OSError("disk full")

        with pytest.raises(StorageError):
            ledger.append(lawson())
        assert seen == []

    def test_unsubscribe(self, ledger):
        """Test that an unsubscribed callback is no longer called."""
        seen = []
        unsubscribe = ledger.subscribe(seen.append)
        unsubscribe()
        ledger.append(lawson())
        assert seen == []

    def test_failing_subscriber_does_not_break_append(self, ledger):
        """Test that subscriber errors are contained."""
        seen = []

        def broken(change):
            raise RuntimeError("render failed")

        ledger.subscribe(broken)
        ledger.subscribe(seen.append)

        expense = ledger.append(lawson())
        assert expense.id in ledger
        assert [c.kind for c in seen] == ["appended"]
