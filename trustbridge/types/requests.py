from typing import List, Optional

from pydantic import BaseModel, Field


class InboundChatMessage(BaseModel):
    chat_id: str = Field(description="Chat identity, e.g. 6281234567890@c.us")
    text: str = Field(description="Raw message body")


class ChatReply(BaseModel):
    chat_id: str
    replies: List[str] = Field(default_factory=list)
    step: Optional[str] = Field(default=None, description="Wizard step after handling, if a transfer is active")
