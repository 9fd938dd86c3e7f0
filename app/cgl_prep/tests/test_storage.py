import json

import pytest
from flask import Flask

from app.cgl_prep.models import db
from app.cgl_prep.services import storage
from app.cgl_prep.services.storage import (
    DatabaseStorage,
    JSONFileStorage,
    MemoryStorage,
    VOCABULARY,
    create_storage,
)


@pytest.fixture
def db_app():
    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
    db.init_app(app)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(params=["file", "memory", "database"])
def store(request, tmp_path):
    if request.param == "database":
        request.getfixturevalue("db_app")
        yield DatabaseStorage()
        return
    app = Flask(__name__)
    with app.app_context():
        yield JSONFileStorage(tmp_path / "data") if request.param == "file" else MemoryStorage()


def _record(record_id, day="2024-05-01", **extra):
    return {"id": record_id, "word": record_id.upper(), "learned": False, "dateAdded": day, **extra}


def test_empty_collection(store):
    assert store.all(VOCABULARY) == []
    assert store.find(VOCABULARY, "abc") is None
    assert store.update(VOCABULARY, "abc", {"learned": True}) is None


def test_add_and_read_back_in_order(store):
    store.add(VOCABULARY, [_record("a"), _record("b")])
    store.add(VOCABULARY, [_record("c")])

    assert [r["id"] for r in store.all(VOCABULARY)] == ["a", "b", "c"]
    assert store.find(VOCABULARY, "b")["word"] == "B"


def test_todays_filters_on_date_added(store, monkeypatch):
    monkeypatch.setattr(storage, "today_string", lambda: "2024-05-02")
    store.add(VOCABULARY, [_record("old"), _record("new", day="2024-05-02")])

    assert [r["id"] for r in store.todays(VOCABULARY)] == ["new"]


def test_update_merges_and_persists(store):
    store.add(VOCABULARY, [_record("a"), _record("b")])

    updated = store.update(VOCABULARY, "b", {"learned": True, "id": "zzz", "userExample": "Mine."})

    assert updated == _record("b", learned=True, userExample="Mine.")
    assert store.find(VOCABULARY, "b")["learned"] is True
    assert store.find(VOCABULARY, "a")["learned"] is False
    assert store.find(VOCABULARY, "zzz") is None


def test_save_all_replaces_collection(store):
    store.add(VOCABULARY, [_record("a")])
    store.save_all(VOCABULARY, [_record("x"), _record("y")])

    assert [r["id"] for r in store.all(VOCABULARY)] == ["x", "y"]
    store.clear(VOCABULARY)
    assert store.all(VOCABULARY) == []


def test_collections_are_independent(store):
    store.add(VOCABULARY, [_record("a")])
    store.add(storage.IDIOMS, [{"id": "i1", "idiom": "Break the ice", "dateAdded": "2024-05-01"}])

    assert [r["id"] for r in store.all(VOCABULARY)] == ["a"]
    assert [r["id"] for r in store.all(storage.IDIOMS)] == ["i1"]


def test_memory_storage_returns_copies():
    store = MemoryStorage()
    store.add(VOCABULARY, [_record("a")])

    store.all(VOCABULARY)[0]["learned"] = True

    assert store.find(VOCABULARY, "a")["learned"] is False


def test_file_storage_layout(tmp_path):
    app = Flask(__name__)
    with app.app_context():
        store = JSONFileStorage(tmp_path / "data")
        store.add(VOCABULARY, [_record("a")])

    path = tmp_path / "data" / "vocabulary.json"
    assert json.loads(path.read_text(encoding="utf-8")) == [_record("a")]


def test_file_storage_tolerates_corrupt_file(tmp_path):
    (tmp_path / "vocabulary.json").write_text("{ not json", encoding="utf-8")
    app = Flask(__name__)
    with app.app_context():
        assert JSONFileStorage(tmp_path).all(VOCABULARY) == []


def test_create_storage():
    assert isinstance(create_storage("memory"), MemoryStorage)
    assert isinstance(create_storage("database"), DatabaseStorage)
    assert isinstance(create_storage("file", "/tmp/anywhere"), JSONFileStorage)
    with pytest.raises(ValueError):
        create_storage("file")
    with pytest.raises(ValueError):
        create_storage("redis")


def test_app_uses_file_backend_from_config(app, client, tmp_path):
    app.config.update(STORAGE_BACKEND="file", DATA_DIR=str(tmp_path))
    storage.reset_storage()

    words = client.get("/api/vocabulary").json["data"]

    saved = json.loads((tmp_path / "vocabulary.json").read_text(encoding="utf-8"))
    assert [w["id"] for w in saved] == [w["id"] for w in words]
    assert client.get("/health").json["storage"] == "file"
