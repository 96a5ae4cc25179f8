from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.config import settings
from app.database import SessionLocal
from app.logging_config import LoggerAdapter, get_logger
from app.models import TransactionType
from app.services.classifier_service import classify
from app.services.credential_service import CredentialCheck, check_credentials
from app.services.dispatch_service import dispatch
from app.services.errors import ValidationError
from app.services.history_store import BOT_SENDER, USER_SENDER, ChatMessage, HistoryStore, get_history_store
from app.services.pipeline_state import PipelineState, abort, is_terminal, transition
from app.services.transaction_service import record_transaction
from app.services.user_service import canonical_user_id

logger = get_logger("hub_service")

MSG_CONNECTED = "The connection is established. You can send requests."
MSG_EMPTY_NOTE = "Confusion: a note can't be empty."
MSG_CONFIRMATION = "Your request has been processed."
MSG_UNEXPECTED_ERROR = "Error while processing a request: {error}"


class MessageKind(str, Enum):
    SYSTEM_MESSAGE = "ReceiveSystemMessage"
    RESPONSE = "ReceiveResponse"


class CallerChannel(ABC):
    """The single connection that sent the request."""

    @abstractmethod
    async def send(self, kind: MessageKind, payload: str) -> None:
        """Deliver payload to the caller. Must not raise if the caller is gone."""
        pass


class ChatHub:
    """Runs the per-message pipeline and owns access to the history table."""

    def __init__(
        self,
        history: Optional[HistoryStore] = None,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        self.history = history or get_history_store()
        self.session_factory = session_factory or SessionLocal

    def _check_credentials(self, user_id: str) -> CredentialCheck:
        db = self.session_factory()
        try:
            return check_credentials(db, user_id)
        finally:
            db.close()

    def _record_withdrawal(self, timestamp: datetime, user_id: UUID) -> None:
        db = self.session_factory()
        try:
            record_transaction(db, timestamp, settings.transaction_amount, user_id, TransactionType.WITHDRAWAL)
        finally:
            db.close()

    async def _validate(self, user_id: str, message: str) -> CredentialCheck:
        if not message or not message.strip():
            raise ValidationError(MSG_EMPTY_NOTE)

        check = await run_in_threadpool(self._check_credentials, user_id)
        if not check.ok:
            raise ValidationError(check.reason)
        return check

    async def on_connected(self, caller: CallerChannel) -> None:
        await caller.send(MessageKind.SYSTEM_MESSAGE, MSG_CONNECTED)

    def load_chat_history(self, user_id: str) -> list[ChatMessage]:
        return self.history.read(canonical_user_id(user_id))

    def clean_history(self, user_id: str) -> None:
        self.history.clear(canonical_user_id(user_id))
        logger.info("History cleared", extra={"context": {"user_id": user_id}})

    async def send_message(self, caller: CallerChannel, user_id: str, message: str) -> PipelineState:
        """Process one inbound message. Returns the terminal pipeline state."""
        log = LoggerAdapter(logger, {"user_id": user_id})
        history_key = canonical_user_id(user_id)
        state = PipelineState.VALIDATING
        replied = False

        try:
            try:
                check = await self._validate(user_id, message)
            except ValidationError as e:
                log.info("Message rejected", context={"reason": e.message})
                replied = True
                await caller.send(MessageKind.SYSTEM_MESSAGE, e.message)
                return abort(state)

            # Side effects below are never rolled back
            state = transition(state, PipelineState.BILLING_RECORDING)
            now = datetime.now(timezone.utc)
            await run_in_threadpool(self._record_withdrawal, now, check.user.id)
            sender = check.user.first_name or USER_SENDER
            self.history.append(history_key, ChatMessage(sender=sender, text=message, sent_at=now))

            state = transition(state, PipelineState.CLASSIFYING)
            classification = await classify(message)

            state = transition(state, PipelineState.DISPATCHING)
            result = await dispatch(user_id, message, classification, check.credentials)
            if not result.ok:
                # User message stays in history, no bot message is appended
                replied = True
                await caller.send(MessageKind.RESPONSE, result.error)
                state = abort(state)
                log.info("Pipeline finished", context={"state": state.value, "error_code": result.error_code})
                return state

            state = transition(state, PipelineState.RESPONDING)
            bot_response = result.unwrap_or(MSG_CONFIRMATION)
            replied = True
            await caller.send(MessageKind.RESPONSE, bot_response)

            state = transition(state, PipelineState.HISTORY_UPDATING)
            self.history.append(history_key, ChatMessage(sender=BOT_SENDER, text=bot_response))

            state = transition(state, PipelineState.DONE)
            log.info(
                "Pipeline finished",
                context={"state": state.value, "target": classification.target.value},
            )
            return state
        except Exception as e:
            log.error("Pipeline failed", context={"state": state.value, "error": str(e)}, exc_info=True)
            if not replied:
                await caller.send(MessageKind.SYSTEM_MESSAGE, MSG_UNEXPECTED_ERROR.format(error=e))
            return state if is_terminal(state) else abort(state)


_chat_hub: Optional[ChatHub] = None


def get_chat_hub() -> ChatHub:
    """Get or create the hub used by the transport layer."""
    global _chat_hub
    if _chat_hub is None:
        _chat_hub = ChatHub()
    return _chat_hub
