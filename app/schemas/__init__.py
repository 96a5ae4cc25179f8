from app.schemas.hub import (
    ChatMessageOut,
    CleanHistoryRequest,
    HubFrame,
    HubRequest,
    LoadChatHistoryRequest,
    SendMessageRequest,
)

__all__ = [
    "SendMessageRequest",
    "LoadChatHistoryRequest",
    "CleanHistoryRequest",
    "HubRequest",
    "HubFrame",
    "ChatMessageOut",
]
