import asyncio
import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.logging_config import get_logger
from app.schemas.hub import (
    ChatMessageOut,
    CleanHistoryRequest,
    HubFrame,
    HubRequest,
    LoadChatHistoryRequest,
    SendMessageRequest,
)
from app.services.hub_service import CallerChannel, MessageKind, get_chat_hub

router = APIRouter()
logger = get_logger("hub_router")

CHAT_HISTORY_FRAME = "ChatHistory"
MSG_MALFORMED_FRAME = "Malformed request: {error}"
MSG_BINARY_FRAME = "binary frames are not supported"


class WebSocketCaller(CallerChannel):
    """Sends frames back over the originating WebSocket only."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._send_lock = asyncio.Lock()

    async def send(self, kind: MessageKind, payload: str) -> None:
        await self.send_frame(HubFrame(type=kind.value, payload=payload))

    async def send_frame(self, frame: HubFrame) -> None:
        try:
            async with self._send_lock:
                await self.websocket.send_json(frame.model_dump(mode="json"))
        except Exception as e:
            # Caller disconnected mid-pipeline; delivery is best effort
            logger.warning(
                "Frame dropped",
                extra={"context": {"frame_type": frame.type, "error": str(e)}},
            )


def parse_frame(raw: str) -> HubRequest:
    return HubRequest.model_validate({"frame": json.loads(raw)})


@router.websocket("/hub")
async def hub_endpoint(websocket: WebSocket):
    """Real-time hub: one pipeline task per SendMessage frame."""
    await websocket.accept()
    hub = get_chat_hub()
    caller = WebSocketCaller(websocket)
    in_flight: set[asyncio.Task] = set()

    await hub.on_connected(caller)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

            raw = message.get("text")
            if raw is None:
                await caller.send(MessageKind.SYSTEM_MESSAGE, MSG_MALFORMED_FRAME.format(error=MSG_BINARY_FRAME))
                continue

            try:
                frame = parse_frame(raw).frame
            except ValueError as e:
                await caller.send(MessageKind.SYSTEM_MESSAGE, MSG_MALFORMED_FRAME.format(error=e))
                continue

            if isinstance(frame, SendMessageRequest):
                task = asyncio.create_task(hub.send_message(caller, frame.user_id, frame.message))
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)

            elif isinstance(frame, LoadChatHistoryRequest):
                history = hub.load_chat_history(frame.user_id)
                await caller.send_frame(
                    HubFrame(
                        type=CHAT_HISTORY_FRAME,
                        payload=[ChatMessageOut.model_validate(message) for message in history],
                    )
                )

            elif isinstance(frame, CleanHistoryRequest):
                hub.clean_history(frame.user_id)

    except WebSocketDisconnect:
        # In-flight pipelines keep running so history and billing complete
        logger.info("Hub client disconnected", extra={"context": {"in_flight": len(in_flight)}})
