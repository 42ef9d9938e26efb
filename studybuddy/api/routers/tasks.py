"""Task endpoints.

GET    /api/tasks      — the caller's tasks, newest first
POST   /api/tasks      — create a task
PATCH  /api/tasks/{id} — update fields of a task
DELETE /api/tasks/{id} — delete a task
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from studybuddy.api.auth import require_user
from studybuddy.api.dependencies import get_storage
from studybuddy.api.schemas import TaskCreate, TaskOut, TaskUpdate
from studybuddy.storage.models import Task
from studybuddy.storage.repository import Storage

router = APIRouter(prefix="/api", tags=["tasks"])


def _owned_task(storage: Storage, task_id: int, user_id: str) -> Task:
    task = storage.get_task(task_id)
    if task is None or task.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


@router.get("/tasks", response_model=list[TaskOut])
def list_tasks(
    user_id: str = Depends(require_user),
    storage: Storage = Depends(get_storage),  # noqa: B008
):
    return storage.list_tasks(user_id)


@router.post("/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    body: TaskCreate,
    user_id: str = Depends(require_user),
    storage: Storage = Depends(get_storage),  # noqa: B008
):
    return storage.create_task(user_id, body.model_dump())


@router.patch("/tasks/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    body: TaskUpdate,
    user_id: str = Depends(require_user),
    storage: Storage = Depends(get_storage),  # noqa: B008
):
    _owned_task(storage, task_id, user_id)
    return storage.update_task(task_id, body.model_dump(exclude_unset=True))


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: int,
    user_id: str = Depends(require_user),
    storage: Storage = Depends(get_storage),  # noqa: B008
) -> Response:
    _owned_task(storage, task_id, user_id)
    storage.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
