"""Tests for Store: identity, persistence and schema reconciliation."""

from __future__ import annotations

import sqlite3

import pytest

import rowmodel.engine
from rowmodel import Model, column, model
from rowmodel.db.schema import ID_COLUMN, table_columns, table_exists
from rowmodel.errors import (
    FieldValueError,
    InstanceNotFoundError,
    InvalidIdentityError,
    SchemaMismatchError,
    UnboundModelError,
    UnsavedModelError,
)
from rowmodel.model import UNSAVED_ID
from sample_models import Album, Credits, Genre, Note, Track


@model(table="Memo")
class MemoV1(Model):
    title: str = ""


@model(table="Memo")
class MemoV2(Model):
    title: str = ""
    priority: int = column(3)
    done: bool = False


# ------------------------------------------------------------------
# Identity
# ------------------------------------------------------------------


def test_new_instance_is_unsaved():
    note = Note(body="x")
    assert note.id == UNSAVED_ID
    assert not note.is_saved


def test_first_save_assigns_positive_identity(store):
    note = store.save(Note(body="x"))
    assert note.id > 0
    assert note.is_saved
    assert note.store is store


def test_identities_increase(store):
    ids = [store.save(Note(body=str(i))).id for i in range(3)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 3


def test_second_save_updates_in_place(store, conn):
    note = store.save(Note(body="draft"))
    first_id = note.id
    note.body = "final"
    store.save(note)

    assert note.id == first_id
    rows = conn.execute(f"SELECT {ID_COLUMN}, body FROM notes").fetchall()
    assert [tuple(r) for r in rows] == [(first_id, "final")]


def test_identities_are_not_reused_after_delete(store):
    first = store.save(Note(body="a"))
    first_id = first.id
    store.delete(first)
    assert store.save(Note(body="b")).id > first_id


# ------------------------------------------------------------------
# Load / reload
# ------------------------------------------------------------------


def test_load_returns_equal_instance(store):
    album = store.save(
        Album(
            title="Blue",
            year=1971,
            rating=4.5,
            explicit=True,
            genre=Genre.FOLK,
            tags=["a"],
            credits=Credits(producer="Joni"),
        )
    )
    loaded = store.load(Album, album.id)

    assert loaded == album
    assert loaded is not album
    assert loaded.store is store
    assert (loaded.title, loaded.year, loaded.rating, loaded.explicit) == ("Blue", 1971, 4.5, True)
    assert loaded.genre is Genre.FOLK
    assert loaded.tags == ["a"]
    assert loaded.credits == Credits(producer="Joni")


def test_reload_discards_unsaved_changes(store):
    note = store.save(Note(body="kept"))
    note.body = "changed"
    store.reload(note)
    assert note.body == "kept"


def test_reload_preserves_transient_fields(store):
    album = store.save(Album(title="t"))
    album.play_cache["plays"] = 3
    store.reload(album)
    assert album.play_cache == {"plays": 3}


def test_load_missing_identity(store):
    store.save(Note(body="x"))
    with pytest.raises(InstanceNotFoundError) as info:
        store.load(Note, 999)
    assert info.value.identity == 999
    assert info.value.table == "notes"
    assert str(info.value) == "No entry in database with id 999 for model notes"


def test_load_negative_identity(store, db_path):
    with pytest.raises(InvalidIdentityError):
        store.load(Note, -5)
    assert not db_path.exists()


def test_not_found_does_not_reconcile(store, monkeypatch):
    store.save(Note(body="x"))
    calls = []
    monkeypatch.setattr(rowmodel.engine, "ensure_table", lambda *a: calls.append(a) or [])
    with pytest.raises(InstanceNotFoundError):
        store.load(Note, 42)
    assert calls == []


def test_reload_unsaved(store, db_path):
    with pytest.raises(UnsavedModelError):
        store.reload(Note(body="x"))
    assert not db_path.exists()


def test_load_from_missing_table_creates_it(store, conn):
    with pytest.raises(InstanceNotFoundError):
        store.load(Note, 1)
    assert table_exists(conn, "notes")


# ------------------------------------------------------------------
# Delete
# ------------------------------------------------------------------


def test_delete_removes_row(store):
    note = store.save(Note(body="x"))
    note_id = note.id
    store.delete(note)

    with pytest.raises(InstanceNotFoundError):
        store.load(Note, note_id)
    assert note.id == note_id


def test_delete_unsaved(store, db_path):
    with pytest.raises(UnsavedModelError, match="No record"):
        store.delete(Note(body="x"))
    assert not db_path.exists()


def test_delete_does_not_cascade(store):
    album = store.save(Album(title="t", tracks=[Track(name="a"), Track(name="b")]))
    store.delete(album)
    assert store.count(Track) == 2


def test_update_of_vanished_row(store, conn):
    note = store.save(Note(body="x"))
    conn.execute("DELETE FROM notes")
    conn.commit()
    note.body = "y"
    with pytest.raises(InstanceNotFoundError):
        store.save(note)
    assert store.count(Note) == 0


# ------------------------------------------------------------------
# Binding
# ------------------------------------------------------------------


def test_unbound_instance_methods():
    note = Note(body="x")
    with pytest.raises(UnboundModelError):
        note.save()
    with pytest.raises(UnboundModelError):
        note.delete()


def test_bound_instance_methods(store):
    note = store.bind(Note(body="x"))
    note.save()
    assert note.is_saved
    note.body = "y"
    note.reload()
    assert note.body == "x"
    note.delete()
    assert store.count(Note) == 0


# ------------------------------------------------------------------
# Schema reconciliation
# ------------------------------------------------------------------


def test_first_save_creates_table(store, conn):
    store.save(Note(body="x"))
    assert table_exists(conn, "notes")


def test_additive_migration_keeps_rows(store, conn):
    old = store.save(MemoV1(title="old"))

    new = store.save(MemoV2(title="new", priority=1, done=True))
    assert new.id > old.id
    columns = {name for name, _ in table_columns(conn, "Memo")}
    assert columns == {ID_COLUMN, "title", "priority", "done"}

    migrated = store.load(MemoV2, old.id)
    assert migrated.title == "old"
    assert migrated.priority == 3
    assert migrated.done is False

    # the narrower model still reads the wider table
    assert store.load(MemoV1, new.id).title == "new"


def test_read_triggers_migration(store, conn):
    store.save(MemoV1(title="old"))
    assert store.count(MemoV2) == 1
    assert [m.title for m in store.manager(MemoV2).all()] == ["old"]
    assert "priority" in [name for name, _ in table_columns(conn, "Memo")]


def test_persistent_mismatch_raises(store, monkeypatch):
    monkeypatch.setattr(rowmodel.engine, "ensure_table", lambda *a: [])
    with pytest.raises(SchemaMismatchError, match="notes"):
        store.save(Note(body="x"))


def test_other_operational_errors_propagate(store, conn):
    conn.execute(
        "CREATE TABLE notes (body TEXT, pinned BOOLEAN, _id INTEGER PRIMARY KEY AUTOINCREMENT)"
    )
    conn.execute(
        "CREATE TRIGGER refuse BEFORE INSERT ON notes "
        "BEGIN SELECT RAISE(ABORT, 'refused'); END"
    )
    conn.commit()
    with pytest.raises(sqlite3.DatabaseError, match="refused"):
        store.save(Note(body="x"))


def test_sync_reports_added_columns(store):
    store.save(MemoV1(title="x"))
    assert store.sync([MemoV2]) == {"Memo": ["priority", "done"]}
    assert store.sync([MemoV2]) == {"Memo": []}


def test_ensure_schema_creates_empty_table(store, conn):
    store.ensure_schema(Track)
    assert table_exists(conn, "Track")


def test_from_config(tmp_path):
    from rowmodel.config import RowModelConfig

    cfg = RowModelConfig()
    cfg.database.path = str(tmp_path / "cfg.db")
    cfg.database.journal_mode = "DELETE"
    s = rowmodel.engine.Store.from_config(cfg)
    assert s.database.journal_mode == "DELETE"
    assert str(s.database.db_path) == str(tmp_path / "cfg.db")


def test_wrong_primitive_type_is_rejected_before_writing(store):
    album = store.save(Album(title="Blue", year=1971))
    album.year = "nineteen"
    with pytest.raises(FieldValueError, match="year"):
        store.save(album)
    assert store.load(Album, album.id).year == 1971
