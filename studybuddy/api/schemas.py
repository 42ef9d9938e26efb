"""Request and response bodies for the Study Buddy REST API.

JSON uses camelCase field names (the web client's convention); Python
code uses snake_case. Response models read straight from ORM rows.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MAX_MESSAGE_LENGTH = 20_000
MAX_SCHEDULE_LENGTH = 20_000

Priority = Literal["low", "medium", "high"]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# -- Profile ----------------------------------------------------------------


class ProfileUpdate(CamelModel):
    university: str | None = Field(default=None, max_length=255)
    major: str | None = Field(default=None, max_length=255)
    year: str | None = Field(default=None, max_length=32)
    onboarding_complete: bool | None = None


class ProfileOut(CamelModel):
    id: int
    user_id: str
    university: str | None
    major: str | None
    year: str | None
    onboarding_complete: bool
    created_at: datetime
    updated_at: datetime


# -- Courses ----------------------------------------------------------------


class CourseIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: str | None = Field(default=None, max_length=64)
    professor: str | None = Field(default=None, max_length=255)
    location: str | None = Field(default=None, max_length=255)
    days: list[str] = Field(default_factory=list)
    start_time: str | None = Field(default=None, max_length=32)
    end_time: str | None = Field(default=None, max_length=32)


class CourseOut(CourseIn):
    id: int
    user_id: str
    created_at: datetime


class BulkCoursesRequest(CamelModel):
    courses: list[CourseIn]


class ParseScheduleRequest(CamelModel):
    schedule_text: str = Field(..., min_length=1, max_length=MAX_SCHEDULE_LENGTH)


# -- Tasks ------------------------------------------------------------------


class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    due_date: datetime | None = None
    course_id: int | None = None
    priority: Priority = "medium"


class TaskUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    due_date: datetime | None = None
    course_id: int | None = None
    priority: Priority | None = None
    completed: bool | None = None
    reminder_time: datetime | None = None


class TaskOut(CamelModel):
    id: int
    user_id: str
    title: str
    description: str | None
    due_date: datetime | None
    course_id: int | None
    priority: str
    completed: bool
    reminder_time: datetime | None
    created_at: datetime
    updated_at: datetime


# -- Study chats ------------------------------------------------------------


class ChatMessageRequest(CamelModel):
    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


class ChatMessageOut(CamelModel):
    id: int
    chat_id: int
    role: str
    content: str
    created_at: datetime


class StudyChatOut(CamelModel):
    id: int
    user_id: str
    title: str
    created_at: datetime
    updated_at: datetime
    messages: list[ChatMessageOut]


# -- Shared answers ---------------------------------------------------------


class SharedAnswerCreate(CamelModel):
    question: str = Field(default="", max_length=MAX_MESSAGE_LENGTH)
    answer: str = Field(..., min_length=1)


class SharedAnswerOut(CamelModel):
    id: int
    share_id: str
    user_id: str
    question: str
    answer: str
    created_at: datetime
