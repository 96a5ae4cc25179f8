"""Route a classified message to its integration handler.

Handlers raise IntegrationError; dispatch() converts every failure into
Result.failure so nothing raised by an integration escapes to the caller.
"""

from typing import Awaitable, Callable, Iterable, Optional

from app.logging_config import get_logger
from app.models import Credential, CredentialType
from app.services.classifier_service import Classification, Integration, PromptCommand
from app.services.credential_service import get_credential_value
from app.services.errors import IntegrationError
from app.services.result import Result
from app.services.slack_service import SlackService
from app.services.trello_service import TrelloService

logger = get_logger("dispatch_service")

Handler = Callable[[str, Classification, list[Credential]], Awaitable[Optional[str]]]
TrelloHandler = Callable[[TrelloService, str], Awaitable[str]]

CREDENTIAL_LABELS = {
    CredentialType.SLACK_TOKEN: "Slack token",
    CredentialType.TRELLO_API_KEY: "Trello API key",
    CredentialType.TRELLO_SECRET: "Trello secret",
}


def require_credential(credentials: Iterable[Credential], credential_type: CredentialType) -> str:
    value = get_credential_value(credentials, credential_type)
    if not value:
        label = CREDENTIAL_LABELS[credential_type]
        raise IntegrationError(f"{label} is not set. Please add it in your API keys.", code="missing_credential")
    return value


async def _dispatch_none(text: str, classification: Classification, credentials: list[Credential]) -> Optional[str]:
    return None


async def _dispatch_slack(text: str, classification: Classification, credentials: list[Credential]) -> Optional[str]:
    token = require_credential(credentials, CredentialType.SLACK_TOKEN)
    return await SlackService(token).post_message(text)


async def _create_board(service: TrelloService, text: str) -> str:
    return await service.create_board(text)


async def _add_cards(service: TrelloService, text: str) -> str:
    return await service.add_cards(text)


TRELLO_HANDLERS: dict[PromptCommand, TrelloHandler] = {
    PromptCommand.CREATE_BOARD: _create_board,
    PromptCommand.ADD_CARDS: _add_cards,
}


async def _dispatch_trello(text: str, classification: Classification, credentials: list[Credential]) -> Optional[str]:
    token = require_credential(credentials, CredentialType.TRELLO_SECRET)
    api_key = require_credential(credentials, CredentialType.TRELLO_API_KEY)

    handler = TRELLO_HANDLERS.get(classification.sub_command)
    if handler is None:
        return classification.sub_command.value
    return await handler(TrelloService(api_key, token), text)


HANDLERS: dict[Integration, Handler] = {
    Integration.NONE: _dispatch_none,
    Integration.SLACK: _dispatch_slack,
    Integration.TRELLO: _dispatch_trello,
}


async def dispatch(
    user_id: str,
    text: str,
    classification: Classification,
    credentials: list[Credential],
) -> Result[str]:
    """
    Run the handler for the classified target.

    Returns Result with:
    - value None — no integration involved, caller sends the default confirmation
    - value str — integration response text
    - failure — user-facing error message and code
    """
    handler = HANDLERS.get(classification.target, _dispatch_none)
    context = {
        "user_id": user_id,
        "target": classification.target.value,
        "sub_command": classification.sub_command.value,
    }

    try:
        response = await handler(text, classification, credentials)
    except IntegrationError as e:
        logger.warning("Integration failed", extra={"context": {**context, "error": e.message, "code": e.code}})
        return Result.failure(e.message, e.code)
    except Exception as e:
        logger.error("Integration crashed", extra={"context": {**context, "error": str(e)}}, exc_info=True)
        return Result.failure(str(e), "integration_error")

    logger.info("Integration dispatched", extra={"context": context})
    return Result.success(response)
