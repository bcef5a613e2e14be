"""
Handler Tests
=============
Ответы меню и панели управления без обращения к Telegram.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from handlers.admin import AdminHandler, STORAGE_FAILURE_TEXT
from handlers.menu import MenuHandler
from services.admin_input import AdminInputManager
from services.analytics_store import AnalyticsStore
from services.content_store import ContentStore
from services.storage import StorageError
from utils.keyboards import CB_ADMIN_PANEL, CB_VIEW, parse_move

ADMIN = 100


def callback_rows(keyboard):
    return [[b.callback_data for b in row] for row in keyboard.inline_keyboard]


@pytest.fixture
def content_store(tmp_path):
    store = ContentStore(str(tmp_path / "db.json"), proxy_title="Запрос прокси")
    store.ensure_initialized()
    return store


@pytest.fixture
def analytics_store(tmp_path):
    clock = lambda: datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc)
    return AnalyticsStore(str(tmp_path / "stats.json"), clock=clock)


@pytest.fixture
def admin_handler(content_store, analytics_store):
    return AdminHandler(content_store, analytics_store, AdminInputManager(content_store))


@pytest.fixture
def menu_handler(content_store, analytics_store):
    return MenuHandler(content_store, analytics_store)


@pytest.fixture
def broken_analytics(tmp_path):
    path = tmp_path / "broken_stats.json"
    path.write_text("{not json", encoding="utf-8")
    return AnalyticsStore(str(path))


class TestMenuHandler:

    def test_main_menu_lists_sections_in_order(self, menu_handler):
        reply = asyncio.run(menu_handler.main_menu())
        assert callback_rows(reply.keyboard) == [
            [f"{CB_VIEW}cpa_intro"], [f"{CB_VIEW}surveys"], [f"{CB_VIEW}games"]
        ]

    def test_admin_gets_panel_button(self, menu_handler):
        reply = asyncio.run(menu_handler.main_menu(is_admin=True))
        assert callback_rows(reply.keyboard)[-1] == [CB_ADMIN_PANEL]

    def test_view_section_escapes_html(self, menu_handler, content_store):
        section_id = asyncio.run(content_store.add_section("<b>T</b>", "a < b"))
        reply = asyncio.run(menu_handler.view_section(section_id))
        assert "&lt;b&gt;T&lt;/b&gt;" in reply.text
        assert "a &lt; b" in reply.text

    def test_view_missing_section(self, menu_handler):
        assert asyncio.run(menu_handler.view_section("gone")) is None

    def test_request_proxy_without_section(self, menu_handler):
        reply = asyncio.run(menu_handler.request_proxy())
        assert "не найдена" in reply.text

    def test_request_proxy_shows_section(self, menu_handler, content_store):
        asyncio.run(content_store.set_proxy_text("write to @support"))
        reply = asyncio.run(menu_handler.request_proxy())
        assert reply.text == "write to @support"

    def test_quiz_unavailable(self, menu_handler):
        assert asyncio.run(menu_handler.start_quiz()) is None

    def test_record_start_counts_visit(self, menu_handler, analytics_store):
        assert asyncio.run(menu_handler.record_start(1, "alice", "Alice")) is True
        report = asyncio.run(analytics_store.get_stats())
        assert report.total_users == 1
        assert report.total_interactions == 1

    def test_broken_stats_do_not_block_menu(self, content_store, broken_analytics):
        handler = MenuHandler(content_store, broken_analytics)

        assert asyncio.run(handler.record_start(1, "alice", "Alice")) is False

        reply = asyncio.run(handler.main_menu())
        assert CB_VIEW + "cpa_intro" in sum(callback_rows(reply.keyboard), [])


class TestAdminHandler:

    def test_add_flow_replies(self, admin_handler, content_store):
        admin_handler.start_add(ADMIN)

        title_reply = asyncio.run(admin_handler.handle_text(ADMIN, "Intro"))
        done_reply = asyncio.run(admin_handler.handle_text(ADMIN, "Body"))
        stray_reply = asyncio.run(admin_handler.handle_text(ADMIN, "thanks"))

        assert "Intro" in title_reply.text
        assert "добавлен" in done_reply.text
        assert stray_reply is None
        assert asyncio.run(content_store.list_sections())[-1].title == "Intro"

    def test_start_edit_missing_section(self, admin_handler):
        assert asyncio.run(admin_handler.start_edit(ADMIN, "gone")) is None
        assert not admin_handler.input_manager.has_state(ADMIN)

    def test_edit_not_found_reply(self, admin_handler, content_store):
        asyncio.run(admin_handler.start_edit(ADMIN, "games"))
        asyncio.run(content_store.delete_section("games"))
        reply = asyncio.run(admin_handler.handle_text(ADMIN, "new"))
        assert "не найден" in reply.text

    def test_storage_failure_reply(self, admin_handler):
        async def broken(title, content):
            raise StorageError("read-only file system")

        admin_handler.input_manager.content_store.add_section = broken
        admin_handler.start_add(ADMIN)
        asyncio.run(admin_handler.handle_text(ADMIN, "Intro"))

        reply = asyncio.run(admin_handler.handle_text(ADMIN, "Body"))

        assert reply.text == STORAGE_FAILURE_TEXT
        assert admin_handler.input_manager.has_state(ADMIN)

    def test_move_via_callback_data(self, admin_handler, content_store):
        moved, reply = asyncio.run(admin_handler.move("move:up:surveys"))
        assert moved is True
        order = [s.id for s in asyncio.run(content_store.list_sections())]
        assert order == ["surveys", "cpa_intro", "games"]
        assert callback_rows(reply.keyboard)[0][1] == "move:up:surveys"

    def test_move_with_bad_callback_data(self, admin_handler):
        moved, _ = asyncio.run(admin_handler.move("move:left:surveys"))
        assert moved is False

    def test_delete_refreshes_list(self, admin_handler):
        deleted, reply = asyncio.run(admin_handler.delete("games"))
        assert deleted is True
        assert "delete:games" not in sum(callback_rows(reply.keyboard), [])

    def test_stats_report(self, admin_handler, analytics_store):
        asyncio.run(analytics_store.register_user(1, None, "Alice"))
        asyncio.run(analytics_store.log_interaction(1))

        reply = asyncio.run(admin_handler.stats())

        assert "Всего пользователей: 1" in reply.text
        assert "Активных сегодня: 1" in reply.text
        assert "Alice (@NoUser)" in reply.text

    def test_stats_unreadable(self, content_store, broken_analytics):
        handler = AdminHandler(content_store, broken_analytics, AdminInputManager(content_store))
        assert asyncio.run(handler.stats()) is None

    def test_cancel(self, admin_handler):
        admin_handler.start_add(ADMIN)
        assert "отменён" in admin_handler.cancel(ADMIN).text
        assert "Нечего" in admin_handler.cancel(ADMIN).text


class TestParseMove:

    def test_valid(self):
        assert parse_move("move:down:proxy_request_ab12") == ("down", "proxy_request_ab12")

    def test_invalid(self):
        assert parse_move("move:up:") is None
        assert parse_move("move:up") is None
        assert parse_move("move:sideways:x") is None
