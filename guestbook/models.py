from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, TypeAdapter, ValidationError as PydanticValidationError


class Message(BaseModel):
    id: int
    content: str
    created_at: datetime


class MessageCreate(BaseModel):
    content: str | None = None


class ErrorResponse(BaseModel):
    error: str


_MESSAGE_LIST = TypeAdapter(list[Message])


def dump_messages(messages: list[Message]) -> str:
    return _MESSAGE_LIST.dump_json(messages).decode()


def load_messages(blob: str | bytes) -> list[Message] | None:
    """Decode a cached snapshot. Returns None when the blob is not a message list."""
    try:
        return _MESSAGE_LIST.validate_json(blob)
    except PydanticValidationError:
        return None
