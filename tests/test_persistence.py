"""
Tests for storage backends and the ledger codec.

The Google Sheets backend is tested against a fake worksheet; no real
API calls are made.
"""

import json

import pytest
from tenacity import wait_none

from tabunganku.exceptions import PersistenceError
from tabunganku.ledger import LedgerStore, demo_snapshot
from tabunganku.models import AuditEventBuilder, StudentCandidate
from tabunganku.services.storage import (
    SCHEMA_VERSION,
    GoogleSheetsAuditStorage,
    GoogleSheetsStorage,
    InMemoryAuditStorage,
    JsonFileStorage,
    StorageError,
    blob_version,
    decode_students,
    decode_transactions,
    encode_collection,
)
from tabunganku.services.storage.google_sheets import CHUNK_SIZE, split_blob


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self):
        self.rows: list[list[str]] = []
        self.fail_update = False
        self.update_calls = 0

    def col_values(self, col):
        return [row[col - 1] for row in self.rows if len(row) >= col and row[col - 1]]

    def clear(self):
        self.rows = []

    def update(self, range_name, values, value_input_option=None):
        assert range_name == "A1"
        self.update_calls += 1
        if self.fail_update:
            raise RuntimeError("quota exceeded")
        while len(self.rows) < len(values):
            self.rows.append([""])
        for i, row in enumerate(values):
            self.rows[i] = list(row)

    def batch_clear(self, ranges):
        for cell_range in ranges:
            start, end = cell_range.split(":")
            for i in range(int(start[1:]) - 1, int(end[1:])):
                if i < len(self.rows):
                    self.rows[i] = [""]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def get_all_values(self):
        return [list(row) for row in self.rows]


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient."""

    def __init__(self):
        self.sheets: dict[str, FakeWorksheet] = {}

    def get_worksheet(self, title, create=False, header=None):
        if title not in self.sheets:
            if not create:
                return None
            self.sheets[title] = FakeWorksheet()
            if header:
                self.sheets[title].append_row(header)
        return self.sheets[title]


class TestCodec:
    """Versioned blob encoding."""

    def test_encode_is_versioned(self):
        """Test blobs carry the schema version."""
        blob = encode_collection(demo_snapshot().students)
        payload = json.loads(blob)
        assert payload["version"] == SCHEMA_VERSION
        assert payload["items"][0]["className"] == "10 IPA 1"
        assert blob_version(blob) == SCHEMA_VERSION

    def test_round_trip(self):
        """Test a snapshot survives encode and decode."""
        snapshot = demo_snapshot()
        students = decode_students(encode_collection(snapshot.students))
        transactions = decode_transactions(encode_collection(snapshot.transactions))
        assert tuple(students) == snapshot.students
        assert tuple(transactions) == snapshot.transactions

    def test_none_means_never_saved(self):
        """Test a missing blob decodes to None, not an empty list."""
        assert decode_students(None) is None
        assert decode_students(encode_collection([])) == []

    def test_legacy_array_is_version_zero(self):
        """Test bare arrays are the legacy format."""
        assert blob_version("[]") == 0

    @pytest.mark.parametrize("blob", [
        "",
        "not json",
        "42",
        '{"items": []}',
        '{"version": 1}',
        '{"version": true, "items": []}',
        '{"version": 2, "items": []}',
        '[{"id": "1"}]',
    ])
    def test_bad_blobs(self, blob):
        """Test every malformed blob is a PersistenceError."""
        with pytest.raises(PersistenceError):
            decode_students(blob)


class TestJsonFileStorage:
    """Local JSON files."""

    def test_save_and_load(self, tmp_path):
        """Test blobs are written to <key>.json."""
        storage = JsonFileStorage(tmp_path / "data")
        assert storage.load("students") is None
        assert storage.save("students", '{"version": 1, "items": []}') is True
        assert (tmp_path / "data" / "students.json").exists()
        assert storage.load("students") == '{"version": 1, "items": []}'

    def test_overwrite_leaves_no_temp_files(self, tmp_path):
        """Test atomic replace cleans up after itself."""
        storage = JsonFileStorage(tmp_path)
        storage.save("students", "one")
        storage.save("students", "two")
        assert storage.load("students") == "two"
        assert [p.name for p in tmp_path.iterdir()] == ["students.json"]

    @pytest.mark.parametrize("key", ["", "../escape", "a/b", ".hidden"])
    def test_invalid_keys(self, tmp_path, key):
        """Test keys cannot point outside the data directory."""
        with pytest.raises(StorageError):
            JsonFileStorage(tmp_path).save(key, "x")

    def test_unicode_names(self, tmp_path):
        """Test non-ASCII names are stored intact."""
        storage = JsonFileStorage(tmp_path)
        store = LedgerStore(storage=storage)
        store.add_student(StudentCandidate(name="Ni Luh Putu Ayu Dewi", class_name="Kelas Ⅻ"))

        reopened = LedgerStore.open(JsonFileStorage(tmp_path))
        assert reopened.snapshot.students[0].class_name == "Kelas Ⅻ"

    def test_store_on_disk_survives_restart(self, tmp_path):
        """Test a full session against the file backend."""
        store = LedgerStore.open(JsonFileStorage(tmp_path), seed=demo_snapshot())
        store.apply_transaction("1", "WITHDRAWAL", 100000)
        store.close()

        reopened = LedgerStore.open(JsonFileStorage(tmp_path), seed=demo_snapshot())
        assert reopened.get_student("1").balance == 400000
        assert reopened.snapshot.transactions[0].amount == 100000
        assert len(reopened.snapshot.transactions) == 6


class TestGoogleSheetsStorage:
    """Google Sheets backend against a fake client."""

    def test_missing_sheet_loads_none(self):
        """Test a never-written key is None."""
        storage = GoogleSheetsStorage(FakeSheetsClient())
        assert storage.load("students") is None

    def test_save_and_load(self):
        """Test a blob round-trips through a worksheet."""
        client = FakeSheetsClient()
        storage = GoogleSheetsStorage(client)
        blob = encode_collection(demo_snapshot().transactions)

        assert storage.save("transactions", blob) is True
        assert "ledger_transactions" in client.sheets
        assert storage.load("transactions") == blob

    def test_large_blob_is_chunked(self):
        """Test blobs above the cell limit are split down column A."""
        client = FakeSheetsClient()
        storage = GoogleSheetsStorage(client)
        blob = "x" * (CHUNK_SIZE * 2 + 10)

        storage.save("students", blob)

        assert len(client.sheets["ledger_students"].rows) == 3
        assert storage.load("students") == blob

    def test_shorter_blob_clears_leftover_rows(self):
        """Test rows beyond the new blob are cleared after the write."""
        client = FakeSheetsClient()
        storage = GoogleSheetsStorage(client)
        storage.save("students", "x" * (CHUNK_SIZE * 2 + 10))

        storage.save("students", "short")

        assert storage.load("students") == "short"
        assert client.sheets["ledger_students"].col_values(1) == ["short"]

    def test_failed_update_keeps_previous_blob(self, monkeypatch):
        """Test a write that fails on every attempt leaves the old blob readable."""
        monkeypatch.setattr(GoogleSheetsStorage.save.retry, "wait", wait_none())
        client = FakeSheetsClient()
        storage = GoogleSheetsStorage(client)
        old = encode_collection(demo_snapshot().students)
        storage.save("students", old)

        sheet = client.sheets["ledger_students"]
        sheet.fail_update = True
        sheet.update_calls = 0
        with pytest.raises(StorageError):
            storage.save("students", encode_collection([]))

        assert sheet.update_calls == 3
        assert storage.load("students") == old

    def test_split_blob(self):
        """Test chunking boundaries."""
        assert split_blob("") == [""]
        assert split_blob("abcde", size=2) == ["ab", "cd", "e"]

    def test_ledger_store_on_sheets(self):
        """Test the store runs unchanged on the sheets backend."""
        client = FakeSheetsClient()
        store = LedgerStore.open(GoogleSheetsStorage(client), seed=demo_snapshot())
        store.apply_transaction("2", "DEPOSIT", 50000)

        reopened = LedgerStore.open(GoogleSheetsStorage(client))
        assert reopened.get_student("2").balance == 1300000


class TestAuditStorage:
    """Audit storage backends."""

    def test_in_memory_is_bounded(self):
        """Test the oldest events fall off."""
        storage = InMemoryAuditStorage(max_events=2)
        for i in range(3):
            storage.append_event(AuditEventBuilder.ledger_loaded(i, 0, "test"))
        events = storage.get_recent_events()
        assert [e.details["students"] for e in events] == [2, 1]

    def test_sheets_audit_round_trip(self):
        """Test events are appended as rows and read back."""
        storage = GoogleSheetsAuditStorage(FakeSheetsClient())
        event = AuditEventBuilder.save_failed("students", "quota exceeded")

        assert storage.append_event(event) is True
        events = storage.get_recent_events()

        assert len(events) == 1
        assert events[0].event_id == event.event_id
        assert events[0].error_message == "quota exceeded"
        assert events[0].entity_id == event.entity_id


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
