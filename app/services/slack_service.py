import re
from typing import Optional

import httpx

from app.config import settings
from app.logging_config import get_logger
from app.services.errors import IntegrationError

logger = get_logger("slack_service")

CHANNEL_PATTERN = re.compile(r"(#[\w-]+)")


def extract_channel(text: str, default: Optional[str] = None) -> str:
    match = CHANNEL_PATTERN.search(text or "")
    if match:
        return match.group(1)
    return default or settings.slack_default_channel


def extract_post_text(text: str) -> str:
    """Text after the first colon if there is one ("post to #dev: deploy done"), else the whole message."""
    text = (text or "").strip()
    if ":" in text:
        _, tail = text.split(":", 1)
        if tail.strip():
            return tail.strip()
    return text


class SlackService:
    """Service for posting messages to Slack on behalf of a user."""

    def __init__(self, token: str, base_url: Optional[str] = None):
        self.token = token
        self.base_url = (base_url or settings.slack_api_url).rstrip("/")

    async def _make_request(self, method: str, data: dict) -> dict:
        """Call a Slack Web API method; raise IntegrationError on any failure."""
        url = f"{self.base_url}/{method}"
        try:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
                response = await client.post(
                    url,
                    headers={"Authorization": f"Bearer {self.token}"},
                    json=data,
                )
        except httpx.HTTPError as e:
            logger.error(f"Slack API error: {e}")
            raise IntegrationError(f"Slack is unavailable: {e}", code="slack_unavailable") from e

        if response.status_code != 200:
            logger.error(f"Slack API error: {response.status_code} - {response.text}")
            raise IntegrationError(f"Slack API error: {response.status_code}", code="slack_error")

        payload = response.json()
        if not payload.get("ok"):
            error = payload.get("error", "unknown_error")
            logger.warning(f"Slack rejected {method}: {error}")
            raise IntegrationError(f"Slack API error: {error}", code="slack_error")
        return payload

    async def post_message(self, text: str) -> str:
        channel = extract_channel(text)
        body = extract_post_text(text)
        if not body:
            raise IntegrationError("Nothing to post to Slack.", code="slack_empty_message")

        await self._make_request("chat.postMessage", {"channel": channel, "text": body})
        logger.info("Slack message posted", extra={"context": {"channel": channel}})
        return f"Posted to Slack {channel}."
