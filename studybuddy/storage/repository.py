"""Storage: thin create/read/update/delete access over one SQLAlchemy session.

Every method commits its own changes. Callers own the session lifetime.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from studybuddy.storage.models import (
    Course,
    SharedAnswer,
    StudyChat,
    StudyChatMessage,
    Task,
    UserProfile,
)

PROFILE_FIELDS = ("university", "major", "year", "onboarding_complete")
COURSE_FIELDS = ("name", "code", "professor", "location", "days", "start_time", "end_time")
TASK_FIELDS = (
    "title",
    "description",
    "due_date",
    "course_id",
    "priority",
    "completed",
    "reminder_time",
)


class Storage:
    """Data access for one request (or one background unit of work)."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # -- Profiles ---------------------------------------------------------

    def get_profile(self, user_id: str) -> UserProfile | None:
        return self._session.scalar(select(UserProfile).where(UserProfile.user_id == user_id))

    def upsert_profile(self, user_id: str, data: dict[str, Any]) -> UserProfile:
        """Update the user's profile, creating it on first save."""
        profile = self.get_profile(user_id)
        if profile is None:
            profile = UserProfile(user_id=user_id)
            self._session.add(profile)
        for field_name in PROFILE_FIELDS:
            if field_name in data:
                setattr(profile, field_name, data[field_name])
        self._session.commit()
        return profile

    # -- Courses ----------------------------------------------------------

    def list_courses(self, user_id: str) -> list[Course]:
        stmt = select(Course).where(Course.user_id == user_id).order_by(Course.name)
        return list(self._session.scalars(stmt))

    def get_course(self, course_id: int) -> Course | None:
        return self._session.get(Course, course_id)

    def create_courses_bulk(self, user_id: str, courses: list[dict[str, Any]]) -> list[Course]:
        if not courses:
            return []
        created = []
        for item in courses:
            values = {k: item.get(k) for k in COURSE_FIELDS if k in item}
            values["days"] = values.get("days") or []
            created.append(Course(user_id=user_id, **values))
        self._session.add_all(created)
        self._session.commit()
        return created

    def delete_course(self, course_id: int) -> bool:
        course = self.get_course(course_id)
        if course is None:
            return False
        self._session.delete(course)
        self._session.commit()
        return True

    # -- Tasks ------------------------------------------------------------

    def list_tasks(self, user_id: str) -> list[Task]:
        stmt = (
            select(Task)
            .where(Task.user_id == user_id)
            .order_by(Task.created_at.desc(), Task.id.desc())
        )
        return list(self._session.scalars(stmt))

    def get_task(self, task_id: int) -> Task | None:
        return self._session.get(Task, task_id)

    def create_task(self, user_id: str, data: dict[str, Any]) -> Task:
        values = {k: data[k] for k in TASK_FIELDS if k in data and data[k] is not None}
        task = Task(user_id=user_id, **values)
        self._session.add(task)
        self._session.commit()
        return task

    def update_task(self, task_id: int, data: dict[str, Any]) -> Task | None:
        task = self.get_task(task_id)
        if task is None:
            return None
        for field_name in TASK_FIELDS:
            if field_name in data:
                setattr(task, field_name, data[field_name])
        self._session.commit()
        return task

    def delete_task(self, task_id: int) -> bool:
        task = self.get_task(task_id)
        if task is None:
            return False
        self._session.delete(task)
        self._session.commit()
        return True

    # -- Shared answers ---------------------------------------------------

    def get_shared_answer(self, share_id: str) -> SharedAnswer | None:
        return self._session.scalar(select(SharedAnswer).where(SharedAnswer.share_id == share_id))

    def create_shared_answer(self, user_id: str, question: str, answer: str) -> SharedAnswer:
        shared = SharedAnswer(
            share_id=str(uuid.uuid4()),
            user_id=user_id,
            question=question,
            answer=answer,
        )
        self._session.add(shared)
        self._session.commit()
        return shared

    # -- Study chats ------------------------------------------------------

    def get_current_chat(self, user_id: str) -> StudyChat:
        """Return the user's most recently updated chat, creating one if none exists."""
        stmt = (
            select(StudyChat)
            .where(StudyChat.user_id == user_id)
            .order_by(StudyChat.updated_at.desc(), StudyChat.id.desc())
            .options(selectinload(StudyChat.messages))
            .limit(1)
        )
        chat = self._session.scalar(stmt)
        # Not atomic: racing first messages can each create a chat; the most
        # recently updated one is current from then on.
        if chat is None:
            chat = StudyChat(user_id=user_id, title="New Chat")
            self._session.add(chat)
            self._session.commit()
        return chat

    def add_chat_message(self, chat_id: int, role: str, content: str) -> StudyChatMessage:
        """Append a message and bump the chat's updated_at."""
        message = StudyChatMessage(chat_id=chat_id, role=role, content=content)
        self._session.add(message)
        chat = self._session.get(StudyChat, chat_id)
        if chat is not None:
            chat.updated_at = datetime.now(UTC)
        self._session.commit()
        return message
