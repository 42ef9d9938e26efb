"""Profile endpoints.

GET  /api/profile — the caller's onboarding profile (null when not created yet)
POST /api/profile — create or update the caller's profile
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from studybuddy.api.auth import require_user
from studybuddy.api.dependencies import get_storage
from studybuddy.api.schemas import ProfileOut, ProfileUpdate
from studybuddy.storage.repository import Storage

router = APIRouter(prefix="/api", tags=["profile"])


@router.get("/profile", response_model=ProfileOut | None)
def get_profile(
    user_id: str = Depends(require_user),
    storage: Storage = Depends(get_storage),  # noqa: B008
):
    return storage.get_profile(user_id)


@router.post("/profile", response_model=ProfileOut)
def save_profile(
    body: ProfileUpdate,
    user_id: str = Depends(require_user),
    storage: Storage = Depends(get_storage),  # noqa: B008
):
    return storage.upsert_profile(user_id, body.model_dump(exclude_unset=True))
