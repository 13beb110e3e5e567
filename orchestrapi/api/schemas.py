"""Request schemas for the chat API."""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from orchestrapi.errors import ValidationError
from orchestrapi.orchestrator.schemas import ChatMessage

CONVERSATION_ROLES = ("user", "assistant", "system")


class ContentPart(BaseModel):
    type: str
    text: Optional[str] = None


class IncomingMessage(BaseModel):
    """A message as sent by the chat client.

    Content is either plain text or a list of typed parts; only `text`
    parts are kept.
    """

    role: str
    content: Union[str, list[ContentPart]] = ""

    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "".join(p.text or "" for p in self.content if p.type == "text")


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    thread_id: Optional[str] = Field(None, alias="threadId")
    messages: list[IncomingMessage] = Field(default_factory=list)


def to_chat_messages(messages: list[IncomingMessage]) -> list[ChatMessage]:
    """Keep user, assistant and system messages as plain-text ChatMessages."""
    return [
        ChatMessage(role=m.role, content=m.text())
        for m in messages
        if m.role in CONVERSATION_ROLES
    ]


def extract_user_message(request: ChatRequest) -> tuple[str, list[ChatMessage]]:
    """Split a request into (current user message, prior history).

    Raises:
        ValidationError: If there is no user message or it is empty
    """
    messages = to_chat_messages(request.messages)
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].role == "user":
            query = messages[index].content.strip()
            if not query:
                break
            return query, messages[:index]
    raise ValidationError("No user message provided")
