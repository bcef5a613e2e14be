"""
Content Store Tests
===================
CRUD, порядок разделов, миграция старого текста прокси.
"""

import asyncio
import json

import pytest

from services.content_store import (
    ContentDocument,
    ContentStore,
    DEFAULT_SECTIONS,
    PROXY_TEXT_PLACEHOLDER,
    Section,
    normalize,
)
from services.storage import StorageError

PROXY_TITLE = "Запрос прокси"


def write_db(path, data):
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")


def read_db(path):
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "db.json"
    write_db(path, {"sections": [
        {"id": "a", "title": "A", "content": "text A"},
        {"id": "b", "title": "B", "content": "text B"},
        {"id": "c", "title": "C", "content": "text C"},
    ]})
    return path


@pytest.fixture
def store(db_path):
    return ContentStore(str(db_path), proxy_title=PROXY_TITLE)


def ids(sections):
    return [s.id for s in sections]


class TestCrud:

    def test_add_get_update_delete_round_trip(self, store):
        section_id = asyncio.run(store.add_section("T", "C"))

        section = asyncio.run(store.get_section(section_id))
        assert section == Section(id=section_id, title="T", content="C")

        assert asyncio.run(store.update_section(section_id, "C2")) is True
        assert asyncio.run(store.get_section(section_id)).content == "C2"

        assert asyncio.run(store.delete_section(section_id)) is True
        assert asyncio.run(store.get_section(section_id)) is None

    def test_new_section_goes_last(self, store):
        section_id = asyncio.run(store.add_section("D", "text D"))
        sections = asyncio.run(store.list_sections())
        assert ids(sections) == ["a", "b", "c", section_id]

    def test_generated_ids_are_unique(self, store):
        new_ids = [asyncio.run(store.add_section(f"T{i}", "x")) for i in range(20)]
        assert len(set(new_ids)) == 20
        assert not {"a", "b", "c"} & set(new_ids)

    def test_update_keeps_title_and_position(self, store):
        asyncio.run(store.update_section("b", "new"))
        sections = asyncio.run(store.list_sections())
        assert ids(sections) == ["a", "b", "c"]
        assert sections[1].title == "B"
        assert sections[1].content == "new"

    def test_missing_id_is_not_an_error(self, store, db_path):
        before = read_db(db_path)
        assert asyncio.run(store.get_section("nope")) is None
        assert asyncio.run(store.update_section("nope", "x")) is False
        assert asyncio.run(store.delete_section("nope")) is False
        assert read_db(db_path) == before

    def test_changes_survive_new_instance(self, store, db_path):
        section_id = asyncio.run(store.add_section("Persisted", "body"))
        reopened = ContentStore(str(db_path), proxy_title=PROXY_TITLE)
        assert asyncio.run(reopened.get_section(section_id)).title == "Persisted"


class TestMoveSection:

    def test_move_up_swaps_with_previous(self, store):
        assert asyncio.run(store.move_section("b", "up")) is True
        assert ids(asyncio.run(store.list_sections())) == ["b", "a", "c"]

    def test_first_cannot_move_up(self, store):
        asyncio.run(store.move_section("b", "up"))
        assert asyncio.run(store.move_section("b", "up")) is False
        assert ids(asyncio.run(store.list_sections())) == ["b", "a", "c"]

    def test_move_down_swaps_with_next(self, store):
        assert asyncio.run(store.move_section("a", "down")) is True
        assert ids(asyncio.run(store.list_sections())) == ["b", "a", "c"]

    def test_last_cannot_move_down(self, store):
        assert asyncio.run(store.move_section("c", "down")) is False
        assert ids(asyncio.run(store.list_sections())) == ["a", "b", "c"]

    def test_unknown_id_or_direction(self, store):
        assert asyncio.run(store.move_section("zzz", "up")) is False
        assert asyncio.run(store.move_section("b", "sideways")) is False
        assert ids(asyncio.run(store.list_sections())) == ["a", "b", "c"]

    def test_concurrent_moves_are_not_lost(self, store):
        async def run():
            await asyncio.gather(
                store.move_section("c", "up"),
                store.move_section("a", "down"),
            )
            return await store.list_sections()

        sections = asyncio.run(run())
        assert sorted(ids(sections)) == ["a", "b", "c"]
        assert len(sections) == 3


class TestLegacyMigration:

    def test_legacy_field_becomes_last_section(self, db_path, store):
        data = read_db(db_path)
        data["proxyText"] = "proxy body"
        write_db(db_path, data)

        sections = asyncio.run(store.list_sections())

        assert len(sections) == 4
        assert sections[-1].title == PROXY_TITLE
        assert sections[-1].content == "proxy body"
        assert sections[-1].id.startswith("proxy_request_")
        assert "proxyText" not in read_db(db_path)

    def test_second_call_does_not_duplicate(self, db_path, store):
        data = read_db(db_path)
        data["proxyText"] = "proxy body"
        write_db(db_path, data)

        first = asyncio.run(store.list_sections())
        second = asyncio.run(store.list_sections())

        assert first == second
        assert len(second) == 4

    def test_legacy_field_dropped_when_section_exists(self, db_path, store):
        data = read_db(db_path)
        data["sections"].append({"id": "p", "title": PROXY_TITLE, "content": "current"})
        data["proxyText"] = "stale"
        write_db(db_path, data)

        sections = asyncio.run(store.list_sections())

        assert [s.content for s in sections if s.title == PROXY_TITLE] == ["current"]
        assert "proxyText" not in read_db(db_path)

    def test_normalize_without_legacy_field_is_noop(self):
        document = ContentDocument(sections=[Section("a", "A", "x")])
        assert normalize(document, PROXY_TITLE) is False
        assert len(document.sections) == 1

    def test_empty_legacy_field_is_ignored(self):
        document = ContentDocument.from_dict({"sections": [], "proxyText": ""})
        assert document.legacy_proxy_text is None
        assert normalize(document, PROXY_TITLE) is False


class TestProxyText:

    def test_placeholder_when_nothing_set(self, store):
        assert asyncio.run(store.get_proxy_text()) == PROXY_TEXT_PLACEHOLDER

    def test_set_creates_then_updates_section(self, store, db_path):
        asyncio.run(store.set_proxy_text("first"))
        asyncio.run(store.set_proxy_text("second"))

        sections = asyncio.run(store.list_sections())
        proxy = [s for s in sections if s.title == PROXY_TITLE]
        assert len(proxy) == 1
        assert proxy[0].content == "second"
        assert asyncio.run(store.get_proxy_text()) == "second"
        assert "proxyText" not in read_db(db_path)

    def test_get_reads_unmigrated_legacy_value(self, db_path, store):
        data = read_db(db_path)
        data["proxyText"] = "legacy"
        write_db(db_path, data)
        assert asyncio.run(store.get_proxy_text()) == "legacy"


class TestStorage:

    def test_new_store_is_seeded(self, tmp_path):
        store = ContentStore(str(tmp_path / "fresh" / "db.json"), proxy_title=PROXY_TITLE)
        store.ensure_initialized()
        sections = asyncio.run(store.list_sections())
        assert ids(sections) == [s["id"] for s in DEFAULT_SECTIONS]

    def test_write_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        store = ContentStore(str(blocker / "db.json"), proxy_title=PROXY_TITLE)

        with pytest.raises(StorageError):
            asyncio.run(store.add_section("T", "C"))

    def test_corrupt_file_raises_storage_error(self, db_path, store):
        db_path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            asyncio.run(store.list_sections())

    def test_quizzes_are_read_only_extension(self, db_path, store):
        data = read_db(db_path)
        data["quizzes"] = [{"id": "q1", "question": "2+2?", "options": ["3", "4"], "answer": "4"}]
        write_db(db_path, data)

        quizzes = asyncio.run(store.list_quizzes())
        assert [q.id for q in quizzes] == ["q1"]
        assert asyncio.run(store.get_quiz("q1")).options == ["3", "4"]
        assert asyncio.run(store.get_quiz("missing")) is None

    def test_no_quizzes_key(self, store):
        assert asyncio.run(store.list_quizzes()) == []
