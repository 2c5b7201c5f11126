# util/types.py
from typing import Literal, TypedDict


# Flow: Narrow types for NDJSON chat events and model messages.
EventType = Literal["sources", "token", "done", "error"]
Role = Literal["system", "user", "assistant"]


class ChatMessage(TypedDict):
    role: Role
    content: str


class SourcePayload(TypedDict):
    text: str
    page: int
    heading: str
