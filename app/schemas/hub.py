from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class SendMessageRequest(BaseModel):
    type: Literal["SendMessage"]
    user_id: str
    message: str = ""


class LoadChatHistoryRequest(BaseModel):
    type: Literal["LoadChatHistory"]
    user_id: str


class CleanHistoryRequest(BaseModel):
    type: Literal["CleanHistory"]
    user_id: str


class HubRequest(BaseModel):
    frame: Union[SendMessageRequest, LoadChatHistoryRequest, CleanHistoryRequest] = Field(discriminator="type")


class ChatMessageOut(BaseModel):
    sender: str
    text: str
    sent_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HubFrame(BaseModel):
    type: str
    payload: Union[str, list[ChatMessageOut]]
