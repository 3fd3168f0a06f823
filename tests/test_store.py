"""Tests for the file-backed user store."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import patch

import pytest

from userhub.errors import StoreReadError, StoreWriteError
from userhub.models import UserFields, UserRecord
from userhub.store import UserStore


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


class TestGetAll:
    """Tests for loading records."""

    def test_missing_file_is_empty(self, store: UserStore) -> None:
        """A store whose file does not exist yet has no records."""
        assert not store.path.exists()
        assert store.get_all() == []

    def test_reads_existing_records(self, store: UserStore) -> None:
        """Records already on disk are returned in order."""
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps([
            {"id": 1, "name": "A", "email": "a@x", "address": "1", "phone": "1"},
            {"id": 2, "name": "B", "email": "b@x", "address": "2", "phone": "2"},
        ]))
        records = store.get_all()
        assert [r.id for r in records] == [1, 2]
        assert records[1].name == "B"

    def test_corrupt_file_raises(self, store: UserStore) -> None:
        """Unparsable content is a read error, not an empty store."""
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        with pytest.raises(StoreReadError):
            store.get_all()

    def test_wrong_shape_raises(self, store: UserStore) -> None:
        """Records missing fields are a read error."""
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps([{"id": 1}]))
        with pytest.raises(StoreReadError):
            store.get_all()


# ---------------------------------------------------------------------------
# Appending
# ---------------------------------------------------------------------------


class TestAppend:
    """Tests for adding records."""

    def test_first_id_is_one(self, store: UserStore, ada: dict) -> None:
        """The first record in an empty store gets id 1."""
        record = store.append(ada)
        assert isinstance(record, UserRecord)
        assert record.id == 1
        assert record.name == "Ada"

    def test_ids_increase(self, store: UserStore, ada: dict) -> None:
        """Each append takes the current count plus one."""
        ids = [store.append(ada).id for _ in range(3)]
        assert ids == [1, 2, 3]

    def test_accepts_user_fields(self, store: UserStore) -> None:
        """A UserFields model is accepted as well as a mapping."""
        record = store.append(UserFields(name="G", email="g@x", address="9", phone="0"))
        assert record.email == "g@x"

    def test_persists_pretty_json_with_id_first(self, store: UserStore, ada: dict) -> None:
        """The file holds the full list, id first, indented."""
        store.append(ada)
        raw = store.path.read_text()
        data = json.loads(raw)
        assert data == [{"id": 1, **ada}]
        assert list(data[0]) == ["id", "name", "email", "address", "phone"]
        assert "\n  " in raw

    def test_survives_reload(self, store: UserStore, ada: dict) -> None:
        """A fresh store on the same path sees appended records."""
        store.append(ada)
        assert UserStore(store.path).get_all()[0].email == "a@x.com"

    def test_creates_parent_directory(self, tmp_path: Path, ada: dict) -> None:
        """The data directory is created on first write."""
        store = UserStore(tmp_path / "deep" / "data" / "users.json")
        store.append(ada)
        assert store.path.is_file()


# ---------------------------------------------------------------------------
# Write failures
# ---------------------------------------------------------------------------


class TestWriteFailure:
    """A failed write commits nothing and keeps the old file readable."""

    def test_raises_store_write_error(self, store: UserStore, ada: dict) -> None:
        """An OSError during the write surfaces as StoreWriteError."""
        with patch.object(Path, "replace", side_effect=OSError("disk full")):
            with pytest.raises(StoreWriteError):
                store.append(ada)

    def test_prior_contents_remain(self, store: UserStore, ada: dict) -> None:
        """Existing records are untouched by a failed append."""
        store.append(ada)
        before = store.path.read_text()
        with patch.object(Path, "replace", side_effect=OSError("disk full")):
            with pytest.raises(StoreWriteError):
                store.append({**ada, "name": "Lost"})
        assert store.path.read_text() == before
        assert [r.name for r in store.get_all()] == ["Ada"]

    def test_temp_file_cleaned_up(self, store: UserStore, ada: dict) -> None:
        """No temp file is left behind after a failed rename."""
        with patch.object(Path, "replace", side_effect=OSError("disk full")):
            with pytest.raises(StoreWriteError):
                store.append(ada)
        leftovers = list(store.path.parent.glob("*.tmp"))
        assert leftovers == []

    def test_next_append_reuses_id(self, store: UserStore, ada: dict) -> None:
        """An id is only consumed by a committed write."""
        with patch.object(Path, "replace", side_effect=OSError("disk full")):
            with pytest.raises(StoreWriteError):
                store.append(ada)
        assert store.append(ada).id == 1


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrentAppends:
    """Appends from many threads never collide."""

    def test_ids_are_one_to_n(self, store: UserStore, ada: dict) -> None:
        """N concurrent appends yield exactly ids 1..N with no lost writes."""
        n = 25
        with ThreadPoolExecutor(max_workers=8) as pool:
            records = list(pool.map(
                lambda i: store.append({**ada, "name": f"user-{i}"}), range(n)
            ))

        assert sorted(r.id for r in records) == list(range(1, n + 1))
        stored = store.get_all()
        assert len(stored) == n
        assert sorted(r.id for r in stored) == list(range(1, n + 1))
        assert {r.name for r in stored} == {f"user-{i}" for i in range(n)}
