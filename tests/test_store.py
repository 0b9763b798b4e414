"""Tests for the file-backed handout store and record locking."""

import json

import portalocker
import pytest

from obreon_chronicle.errors import HandoutNotFoundError, ParseError
from obreon_chronicle.locking import lock_path_for, record_lock, remove_record, write_record
from obreon_chronicle.store import Handout, HandoutStore


@pytest.fixture
def store(temp_project):
    return HandoutStore(temp_project / "handouts", lock_timeout=1.0)


class TestHandoutStore:
    """Tests for HandoutStore."""

    def test_creates_directory(self, temp_project):
        HandoutStore(temp_project / "a" / "b")
        assert (temp_project / "a" / "b").is_dir()

    def test_create_and_get(self, store):
        handout = store.create("Journal:2863/5/1", notes="Location: Tinderspring", gmnotes="{}")

        loaded = store.get(handout.id)
        assert loaded == handout
        assert loaded.inplayerjournals == "all"
        assert (store.root / f"{handout.id}.json").exists()

    def test_record_is_json(self, store):
        handout = store.create("Map of Osherion")
        data = json.loads((store.root / f"{handout.id}.json").read_text(encoding="utf-8"))
        assert data["name"] == "Map of Osherion"
        assert data["id"] == handout.id

    def test_create_rejects_unknown_fields(self, store):
        with pytest.raises(ValueError):
            store.create("Journal:2863/5/1", colour="red")

    def test_get_missing(self, store):
        with pytest.raises(HandoutNotFoundError):
            store.get("nope")

    def test_get_corrupt_record(self, store):
        (store.root / "broken.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(ParseError):
            store.get("broken")

    def test_set_updates_and_persists(self, store):
        handout = store.create("Journal:2863/5/1")
        store.set(handout, name="Journal:2863/5/1-2863/5/2", notes="updated")

        loaded = store.get(handout.id)
        assert loaded.name == "Journal:2863/5/1-2863/5/2"
        assert loaded.notes == "updated"

    def test_set_rejects_unknown_fields(self, store):
        handout = store.create("Journal:2863/5/1")
        with pytest.raises(ValueError):
            store.set(handout, id="other")

    def test_all_sorted_by_name(self, store):
        store.create("b")
        store.create("a")
        store.create("c")
        assert [handout.name for handout in store.all()] == ["a", "b", "c"]

    def test_find_and_find_by_name(self, store):
        store.create("Journal:2863/5/1")
        store.create("Journal:2863/5/2")
        store.create("Map of Osherion")

        assert len(store.find(r"^Journal:")) == 2
        assert store.find_by_name("Map of Osherion").name == "Map of Osherion"
        with pytest.raises(HandoutNotFoundError):
            store.find_by_name("Journal:2863/6/1")

    def test_journal_handouts(self, store):
        store.create("Journal:2863/5/1")
        store.create("Journal:2863/5/1-2863/5/3")
        store.create("Journals of a madman")
        store.create("Map of Osherion")

        names = [handout.name for handout in store.journal_handouts()]
        assert names == ["Journal:2863/5/1", "Journal:2863/5/1-2863/5/3"]

    def test_remove(self, store):
        handout = store.create("Journal:2863/5/1")
        store.remove(handout)

        with pytest.raises(HandoutNotFoundError):
            store.get(handout.id)
        assert not lock_path_for(store.root / f"{handout.id}.json").exists()
        assert store.all() == []


class TestHandout:
    """Tests for the Handout record."""

    def test_from_dict_ignores_unknown_keys(self):
        handout = Handout.from_dict({"id": "1", "name": "x", "avatar": "img.png"})
        assert handout == Handout(id="1", name="x")

    def test_from_dict_requires_id_and_name(self):
        with pytest.raises(ParseError):
            Handout.from_dict({"name": "x"})


class TestLocking:
    """Tests for record locks and atomic writes."""

    def test_write_record_replaces_contents(self, temp_project):
        path = temp_project / "record.json"
        write_record(path, "first")
        write_record(path, "second")

        assert path.read_text(encoding="utf-8") == "second"
        assert not (temp_project / "record.json.tmp").exists()

    def test_lock_is_exclusive(self, temp_project):
        path = temp_project / "record.json"
        with record_lock(path):
            with pytest.raises(portalocker.LockException):
                with portalocker.Lock(lock_path_for(path), timeout=0.1, fail_when_locked=True):
                    pass

    def test_remove_record_missing_is_quiet(self, temp_project):
        remove_record(temp_project / "never.json")
        assert not lock_path_for(temp_project / "never.json").exists()
