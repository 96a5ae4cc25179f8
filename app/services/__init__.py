from app.services.classifier_service import (
    Classification,
    Integration,
    PromptCommand,
    classify,
    classify_sub_command,
    classify_target,
)
from app.services.credential_service import CredentialCheck, check_credentials
from app.services.dispatch_service import dispatch
from app.services.errors import IntegrationError, ValidationError
from app.services.history_store import ChatMessage, HistoryStore, get_history_store
from app.services.hub_service import CallerChannel, ChatHub, MessageKind, get_chat_hub
from app.services.pipeline_state import (
    InvalidTransitionError,
    PipelineState,
    abort,
    can_transition,
    transition,
)
