"""Study chat endpoints for the Study Buddy REST API.

GET  /api/study-chats/current — the caller's current chat with its messages
POST /api/study-chats/message — send a message; the reply streams back as
                                Server-Sent Events (rate limited)

Stream frames (all plain ``data:`` events):
  - ``{"content": "..."}`` — one delta of the assistant's reply
  - ``{"done": true}``     — reply finished and saved
  - ``{"error": "..."}``   — upstream failure; the stream ends
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, Request
from loguru import logger
from sqlalchemy.orm import Session, sessionmaker
from sse_starlette.sse import EventSourceResponse

from studybuddy.api.auth import require_user
from studybuddy.api.dependencies import chat_rate_limit, get_config, get_provider, get_storage
from studybuddy.api.schemas import ChatMessageRequest, StudyChatOut
from studybuddy.assistant import build_system_prompt
from studybuddy.config.schema import StudyBuddyConfig
from studybuddy.providers.types import ChatProvider, LLMMessage
from studybuddy.storage.repository import Storage

router = APIRouter(prefix="/api/study-chats", tags=["chat"])


@router.get("/current", response_model=StudyChatOut)
def current_chat(
    user_id: str = Depends(require_user),
    storage: Storage = Depends(get_storage),  # noqa: B008
):
    return storage.get_current_chat(user_id)


def _open_turn(
    session_factory: sessionmaker[Session], user_id: str, content: str
) -> tuple[int, list[LLMMessage]]:
    """Store the user's message and build the prompt for the reply."""
    with session_factory() as session:
        storage = Storage(session)
        chat = storage.get_current_chat(user_id)
        history = [LLMMessage(role=m.role, content=m.content) for m in chat.messages]
        storage.add_chat_message(chat.id, "user", content)
        system_prompt = build_system_prompt(
            storage.get_profile(user_id),
            storage.list_courses(user_id),
        )
    messages = [
        LLMMessage(role="system", content=system_prompt),
        *history,
        LLMMessage(role="user", content=content),
    ]
    return chat.id, messages


def _save_reply(session_factory: sessionmaker[Session], chat_id: int, reply: str) -> None:
    with session_factory() as session:
        Storage(session).add_chat_message(chat_id, "assistant", reply)


@router.post(
    "/message",
    dependencies=[Depends(require_user), Depends(chat_rate_limit)],
)
async def send_message(
    body: ChatMessageRequest,
    request: Request,
    user_id: str = Depends(require_user),
    provider: ChatProvider = Depends(get_provider),  # noqa: B008
    config: StudyBuddyConfig = Depends(get_config),  # noqa: B008
) -> EventSourceResponse:
    """Save the user's message and relay the assistant's reply as it streams."""
    # Database calls block; keep them off the event loop
    session_factory = request.app.state.session_factory
    chat_id, messages = await asyncio.to_thread(_open_turn, session_factory, user_id, body.content)
    max_tokens = config.ai.max_completion_tokens

    async def event_generator() -> AsyncGenerator[dict, None]:
        reply: list[str] = []
        try:
            async for delta in provider.stream_chat(messages, max_tokens=max_tokens):
                reply.append(delta)
                yield {"data": json.dumps({"content": delta})}

            await asyncio.to_thread(_save_reply, session_factory, chat_id, "".join(reply))
            yield {"data": json.dumps({"done": True})}
        except Exception as exc:
            logger.error("Study chat relay failed for chat {}: {}", chat_id, exc)
            yield {"data": json.dumps({"error": "Failed to send message"})}

    return EventSourceResponse(event_generator())
