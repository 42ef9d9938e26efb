"""Shared answer endpoints.

GET  /api/shared-answers/{share_id} — public read of a shared answer
POST /api/shared-answers            — publish an answer under a new share id
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from studybuddy.api.auth import require_user
from studybuddy.api.dependencies import get_storage
from studybuddy.api.schemas import SharedAnswerCreate, SharedAnswerOut
from studybuddy.storage.repository import Storage

router = APIRouter(prefix="/api", tags=["shared-answers"])


@router.get("/shared-answers/{share_id}", response_model=SharedAnswerOut)
def get_shared_answer(
    share_id: str,
    storage: Storage = Depends(get_storage),  # noqa: B008
):
    answer = storage.get_shared_answer(share_id)
    if answer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Answer not found")
    return answer


@router.post(
    "/shared-answers",
    response_model=SharedAnswerOut,
    status_code=status.HTTP_201_CREATED,
)
def create_shared_answer(
    body: SharedAnswerCreate,
    user_id: str = Depends(require_user),
    storage: Storage = Depends(get_storage),  # noqa: B008
):
    return storage.create_shared_answer(user_id, body.question, body.answer)
