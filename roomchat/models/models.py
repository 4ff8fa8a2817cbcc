# roomchat/models/models.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Member(BaseModel):
    id: str
    display_name: str
    joined_at: str = Field(default_factory=utc_now)


class SystemMessage(BaseModel):
    type: Literal["system"] = "system"
    id: Optional[str] = None
    sender: str = "System"
    text: str
    timestamp: str = Field(default_factory=utc_now)
    encoded: Literal[False] = False


class TextMessage(BaseModel):
    type: Literal["text"] = "text"
    id: Optional[str] = None
    sender: str
    sender_id: str
    text: str
    timestamp: str = Field(default_factory=utc_now)
    encoded: bool = False


class FileMessage(BaseModel):
    type: Literal["file"] = "file"
    id: Optional[str] = None
    sender: str
    sender_id: str
    file_name: str
    file_size_kb: float
    file_ref: str
    timestamp: str = Field(default_factory=utc_now)
    encoded: bool = False


Message = Annotated[
    Union[SystemMessage, TextMessage, FileMessage],
    Field(discriminator="type"),
]

message_adapter: TypeAdapter[Message] = TypeAdapter(Message)


def parse_message(data: dict | str | bytes) -> Message:
    """Build the right message variant from a stored dict or JSON payload."""
    if isinstance(data, (str, bytes)):
        return message_adapter.validate_json(data)
    return message_adapter.validate_python(data)


class FileUpload(BaseModel):
    """A file picked by the user, ready to be handed to the blob store."""

    file_name: str
    data: bytes

    @property
    def size_kb(self) -> float:
        return round(len(self.data) / 1024, 2)


class MembersResponse(BaseModel):
    room_code: str
    members: List[Member]


class MessagesResponse(BaseModel):
    room_code: str
    messages: List[Message]
