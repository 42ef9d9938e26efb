"""Prompt construction for the study assistant and the schedule parser."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from loguru import logger

from studybuddy.storage.models import Course, UserProfile

BASE_SYSTEM_PROMPT = """You are Study Buddy AI, a helpful and encouraging study assistant for college students.
You provide personalized study advice, recommend learning resources, and help with academic questions.

When recommending resources, include specific recommendations like:
- YouTube channels (with channel names)
- Khan Academy topics
- Coursera courses
- Relevant subreddits (r/...)
- Textbooks or study guides when appropriate

Be encouraging but realistic. Tailor your advice to the student's level."""

SCHEDULE_PARSER_PROMPT = """You are a schedule parser. Extract course information from the provided schedule text.
Return a JSON object with a "courses" array. Each course should have:
- name: string (course name)
- code: string | null (course code like "CS 101")
- professor: string | null
- location: string | null (room/building)
- days: string[] (e.g., ["Monday", "Wednesday", "Friday"])
- startTime: string | null (e.g., "10:00 AM")
- endTime: string | null (e.g., "11:00 AM")

Only return valid JSON, no explanation. If you can't parse anything, return {"courses": []}."""

STEM_MAJORS = frozenset(
    {
        "Computer Science",
        "Engineering",
        "Biology",
        "Chemistry",
        "Physics",
        "Mathematics",
        "Pre-Med",
    }
)


def build_system_prompt(profile: UserProfile | None, courses: Sequence[Course]) -> str:
    """Compose the assistant persona plus whatever we know about the student."""
    parts = [BASE_SYSTEM_PROMPT]

    if profile is not None:
        parts.append("\n\nStudent context:")
        if profile.university:
            parts.append(f"\n- University: {profile.university}")
        if profile.major:
            parts.append(f"\n- Major: {profile.major}")
            if profile.major in STEM_MAJORS:
                parts.append(
                    "\n- Note: This is a STEM student. Emphasize problem-solving, "
                    "practice problems, and technical resources."
                )
            if profile.major == "Pre-Law":
                parts.append(
                    "\n- Note: This is a Pre-Law student. Focus on LSAT prep, reading "
                    "comprehension, logical reasoning, and analytical writing."
                )
        if profile.year:
            parts.append(f"\n- Year: {profile.year}")

    if courses:
        parts.append("\n\nCurrent courses:")
        for course in courses:
            prefix = f"{course.code}: " if course.code else ""
            parts.append(f"\n- {prefix}{course.name}")

    return "".join(parts)


def parse_schedule_payload(raw: str | None) -> dict[str, Any]:
    """Decode the parser model's JSON reply into ``{"courses": [...]}``.

    Anything that isn't a JSON object with a list of course objects
    degrades to an empty course list.
    """
    if not raw:
        return {"courses": []}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Schedule parser returned non-JSON output ({} chars)", len(raw))
        return {"courses": []}

    if not isinstance(data, dict):
        return {"courses": []}
    courses = data.get("courses")
    if not isinstance(courses, list):
        return {"courses": []}
    return {"courses": [c for c in courses if isinstance(c, dict) and c.get("name")]}
