import re
from typing import Any, Optional

import httpx

from app.config import settings
from app.logging_config import get_logger
from app.services.errors import IntegrationError

logger = get_logger("trello_service")

QUOTED_PATTERN = re.compile(r"[\"'«“]([^\"'»”]+)[\"'»”]")
BOARD_NAME_PATTERN = re.compile(r"\bboard\s+(?:called|named|titled|for)?\s*(?P<name>[^.!?]+)", re.IGNORECASE)
CARDS_PATTERN = re.compile(
    r"\bcards?\s*:?\s*(?P<cards>.+?)\s+(?:to|on|into|in)\s+(?:the\s+)?(?:board\s+)?(?P<board>[^.!?]+?)(?:\s+board)?\s*[.!?]*$",
    re.IGNORECASE,
)
CARD_SEPARATOR = re.compile(r"\s*(?:,|;|\band\b)\s*", re.IGNORECASE)


def _clean(value: str) -> str:
    return value.strip().strip("\"'«»“”").strip()


def extract_board_name(text: str) -> str:
    quoted = QUOTED_PATTERN.findall(text or "")
    if quoted:
        return _clean(quoted[-1])

    match = BOARD_NAME_PATTERN.search(text or "")
    if match and _clean(match.group("name")):
        return _clean(match.group("name"))

    raise IntegrationError("Could not find a board name in your message.", code="trello_bad_command")


def extract_cards(text: str) -> tuple[list[str], str]:
    """Card names and target board from "add cards A, B and C to board Roadmap"."""
    match = CARDS_PATTERN.search(text or "")
    if not match:
        raise IntegrationError(
            "Could not understand which cards to add. Try: add cards A, B to board Roadmap.",
            code="trello_bad_command",
        )

    cards = [_clean(card) for card in CARD_SEPARATOR.split(match.group("cards"))]
    cards = [card for card in cards if card]
    board = _clean(match.group("board"))
    if not cards or not board:
        raise IntegrationError("Card names and a board name are required.", code="trello_bad_command")
    return cards, board


class TrelloService:
    """Service for managing Trello boards and cards with a user's key and token."""

    def __init__(self, api_key: str, token: str, base_url: Optional[str] = None):
        self.api_key = api_key
        self.token = token
        self.base_url = (base_url or settings.trello_api_url).rstrip("/")

    async def _make_request(self, method: str, path: str, params: Optional[dict] = None) -> Any:
        """Make request to Trello API; raise IntegrationError on any failure."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        query = {"key": self.api_key, "token": self.token, **(params or {})}
        try:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
                response = await client.request(method, url, params=query)
        except httpx.HTTPError as e:
            logger.error(f"Trello API error: {e}")
            raise IntegrationError(f"Trello is unavailable: {e}", code="trello_unavailable") from e

        if response.status_code >= 400:
            logger.error(f"Trello API error: {response.status_code} - {response.text}")
            raise IntegrationError(f"Trello API error: {response.status_code} - {response.text}", code="trello_error")
        return response.json()

    async def create_board(self, text: str) -> str:
        name = extract_board_name(text)
        board = await self._make_request("POST", "boards/", {"name": name, "defaultLists": "true"})
        logger.info("Trello board created", extra={"context": {"board_id": board.get("id")}})

        url = board.get("shortUrl") or board.get("url")
        if url:
            return f"Board '{name}' created: {url}"
        return f"Board '{name}' created."

    async def find_board(self, name: str) -> dict:
        boards = await self._make_request("GET", "members/me/boards", {"fields": "name,url"})
        wanted = name.casefold()
        for board in boards:
            if (board.get("name") or "").casefold() == wanted:
                return board
        raise IntegrationError(f"Board '{name}' not found.", code="trello_board_not_found")

    async def add_cards(self, text: str) -> str:
        cards, board_name = extract_cards(text)
        board = await self.find_board(board_name)

        lists = await self._make_request("GET", f"boards/{board['id']}/lists", {"fields": "name"})
        if not lists:
            raise IntegrationError(f"Board '{board['name']}' has no lists to add cards to.", code="trello_no_lists")
        target_list = lists[0]

        for card in cards:
            await self._make_request("POST", "cards", {"idList": target_list["id"], "name": card})

        logger.info(
            "Trello cards added",
            extra={"context": {"board_id": board["id"], "list_id": target_list["id"], "count": len(cards)}},
        )
        return f"Added {len(cards)} card(s) to '{board['name']}': {', '.join(cards)}"
