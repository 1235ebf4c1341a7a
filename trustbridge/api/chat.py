"""
Inbound chat messages

A chat transport adapter posts every received message here and relays the
returned replies to the user.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..container import Container
from ..types import ChatReply, InboundChatMessage
from . import get_container

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chat")


@router.post("/messages", response_model=ChatReply)
async def receive_message(
    message: InboundChatMessage,
    container: Container = Depends(get_container),
) -> ChatReply:
    if not message.chat_id.strip():
        raise HTTPException(status_code=400, detail="chat_id is required")

    replies = await container.router.handle_message(message.chat_id, message.text)
    session = container.sessions.get(message.chat_id)
    return ChatReply(
        chat_id=message.chat_id,
        replies=replies,
        step=session.step.value if session.step else None,
    )
