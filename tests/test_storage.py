"""Tests for the SQLAlchemy storage layer."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from studybuddy.storage import Storage, create_session_factory
from studybuddy.storage.models import StudyChat


class TestProfiles:
    def test_upsert_creates_then_updates(self, storage):
        assert storage.get_profile("alice") is None

        profile = storage.upsert_profile("alice", {"university": "MIT", "major": "Physics"})
        assert profile.id is not None
        assert profile.onboarding_complete is False

        updated = storage.upsert_profile("alice", {"onboarding_complete": True})
        assert updated.id == profile.id
        assert updated.university == "MIT"
        assert updated.onboarding_complete is True

    def test_unknown_fields_ignored(self, storage):
        profile = storage.upsert_profile("alice", {"user_id": "mallory", "year": "Senior"})
        assert profile.user_id == "alice"
        assert profile.year == "Senior"


class TestCourses:
    def test_bulk_create_orders_by_name(self, storage):
        storage.create_courses_bulk(
            "alice",
            [{"name": "Zoology"}, {"name": "Algebra", "days": ["Monday"], "code": "MATH 1"}],
        )
        storage.create_courses_bulk("bob", [{"name": "Botany"}])

        courses = storage.list_courses("alice")
        assert [c.name for c in courses] == ["Algebra", "Zoology"]
        assert courses[0].days == ["Monday"]
        assert courses[1].days == []

    def test_empty_bulk_is_noop(self, storage):
        assert storage.create_courses_bulk("alice", []) == []

    def test_delete_course(self, storage):
        (course,) = storage.create_courses_bulk("alice", [{"name": "Art"}])
        assert storage.delete_course(course.id) is True
        assert storage.delete_course(course.id) is False
        assert storage.get_course(course.id) is None


class TestTasks:
    def test_defaults_applied(self, storage):
        task = storage.create_task("alice", {"title": "Read", "priority": None})
        assert task.priority == "medium"
        assert task.completed is False

    def test_newest_first(self, storage):
        first = storage.create_task("alice", {"title": "first"})
        second = storage.create_task("alice", {"title": "second"})
        assert [t.id for t in storage.list_tasks("alice")] == [second.id, first.id]

    def test_update_only_given_fields(self, storage):
        task = storage.create_task("alice", {"title": "Essay", "description": "draft"})
        updated = storage.update_task(task.id, {"completed": True})
        assert updated.completed is True
        assert updated.description == "draft"

    def test_update_missing_task(self, storage):
        assert storage.update_task(999, {"completed": True}) is None

    def test_delete_task(self, storage):
        task = storage.create_task("alice", {"title": "x"})
        assert storage.delete_task(task.id) is True
        assert storage.delete_task(task.id) is False


class TestSharedAnswers:
    def test_share_ids_are_unique(self, storage):
        a = storage.create_shared_answer("alice", "q1", "a1")
        b = storage.create_shared_answer("alice", "q2", "a2")
        assert a.share_id != b.share_id
        assert storage.get_shared_answer(a.share_id).answer == "a1"
        assert storage.get_shared_answer("nope") is None


class TestStudyChats:
    def test_current_chat_created_once(self, storage):
        chat = storage.get_current_chat("alice")
        assert chat.title == "New Chat"
        assert storage.get_current_chat("alice").id == chat.id
        assert storage.get_current_chat("bob").id != chat.id

    def test_messages_kept_in_order(self, storage, session_factory):
        chat = storage.get_current_chat("alice")
        storage.add_chat_message(chat.id, "user", "hi")
        storage.add_chat_message(chat.id, "assistant", "hello")

        with session_factory() as session:
            reloaded = Storage(session).get_current_chat("alice")
            assert [(m.role, m.content) for m in reloaded.messages] == [
                ("user", "hi"),
                ("assistant", "hello"),
            ]

    def test_adding_message_bumps_updated_at(self, storage):
        chat = storage.get_current_chat("alice")
        before = chat.updated_at
        storage.add_chat_message(chat.id, "user", "hi")
        assert chat.updated_at >= before


    def test_duplicate_chats_resolve_to_most_recently_updated(self, storage, session_factory):
        # Two rows for one user, as left behind by racing first messages
        with session_factory() as session:
            older = StudyChat(user_id="alice", updated_at=datetime(2024, 1, 1, tzinfo=UTC))
            newer = StudyChat(user_id="alice", updated_at=datetime(2024, 1, 2, tzinfo=UTC))
            session.add_all([older, newer])
            session.commit()

        assert storage.get_current_chat("alice").id == newer.id

        storage.add_chat_message(older.id, "user", "back to this one")
        assert storage.get_current_chat("alice").id == older.id


class TestSessionFactory:
    def test_sqlite_file_database_persists(self, tmp_path: Path):
        db_file = tmp_path / "nested" / "studybuddy.db"
        factory = create_session_factory(f"sqlite:///{db_file}")

        with factory() as session:
            Storage(session).create_task("alice", {"title": "persisted"})

        assert db_file.exists()
        with create_session_factory(f"sqlite:///{db_file}")() as session:
            assert [t.title for t in Storage(session).list_tasks("alice")] == ["persisted"]
