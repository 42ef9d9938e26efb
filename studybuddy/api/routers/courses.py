"""Course endpoints.

GET    /api/courses       — the caller's courses, ordered by name
POST   /api/courses/parse — extract courses from pasted schedule text (rate limited)
POST   /api/courses/bulk  — save a batch of courses
DELETE /api/courses/{id}  — delete one of the caller's courses
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from loguru import logger

from studybuddy.api.auth import require_user
from studybuddy.api.dependencies import get_config, get_provider, get_storage, parse_rate_limit
from studybuddy.api.schemas import BulkCoursesRequest, CourseOut, ParseScheduleRequest
from studybuddy.assistant import SCHEDULE_PARSER_PROMPT, parse_schedule_payload
from studybuddy.config.schema import StudyBuddyConfig
from studybuddy.providers.exceptions import ProviderError
from studybuddy.providers.types import ChatProvider, LLMMessage
from studybuddy.storage.repository import Storage

router = APIRouter(prefix="/api", tags=["courses"])


@router.get("/courses", response_model=list[CourseOut])
def list_courses(
    user_id: str = Depends(require_user),
    storage: Storage = Depends(get_storage),  # noqa: B008
):
    return storage.list_courses(user_id)


@router.post(
    "/courses/parse",
    dependencies=[Depends(require_user), Depends(parse_rate_limit)],
)
async def parse_schedule(
    body: ParseScheduleRequest,
    provider: ChatProvider = Depends(get_provider),  # noqa: B008
    config: StudyBuddyConfig = Depends(get_config),  # noqa: B008
) -> dict:
    """Ask the model to turn free-form schedule text into course records."""
    messages = [
        LLMMessage(role="system", content=SCHEDULE_PARSER_PROMPT),
        LLMMessage(role="user", content=body.schedule_text),
    ]
    try:
        result = await provider.chat(
            messages,
            max_tokens=config.ai.max_completion_tokens,
            response_format={"type": "json_object"},
        )
    except ProviderError as exc:
        logger.error("Schedule parse failed: {}", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to parse schedule",
        ) from exc

    return parse_schedule_payload(result.content)


@router.post("/courses/bulk", response_model=list[CourseOut])
def create_courses(
    body: BulkCoursesRequest,
    user_id: str = Depends(require_user),
    storage: Storage = Depends(get_storage),  # noqa: B008
):
    return storage.create_courses_bulk(user_id, [c.model_dump() for c in body.courses])


@router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(
    course_id: int,
    user_id: str = Depends(require_user),
    storage: Storage = Depends(get_storage),  # noqa: B008
) -> Response:
    course = storage.get_course(course_id)
    if course is None or course.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    storage.delete_course(course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
