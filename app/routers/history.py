from fastapi import APIRouter, Response

from app.schemas.hub import ChatMessageOut
from app.services.hub_service import get_chat_hub

router = APIRouter(prefix="/history", tags=["history"])


@router.get("/{user_id}", response_model=list[ChatMessageOut])
def load_chat_history(user_id: str):
    """Chat history of a user ordered by sent_at (empty list if none)."""
    history = get_chat_hub().load_chat_history(user_id)
    return [ChatMessageOut.model_validate(message) for message in history]


@router.delete("/{user_id}", status_code=204)
def clean_history(user_id: str):
    get_chat_hub().clean_history(user_id)
    return Response(status_code=204)
