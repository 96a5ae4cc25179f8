import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from app.config import settings
from app.logging_config import get_logger
from app.services.classifier_cache import build_cache_key, get_classifier_cache
from app.services.llm import OpenAIProvider

logger = get_logger("classifier_service")


class Integration(str, Enum):
    NONE = "none"
    SLACK = "slack"
    TRELLO = "trello"


class PromptCommand(str, Enum):
    NONE = "none"
    POST_MESSAGE = "post_message"  # Slack: post text to a channel
    CREATE_BOARD = "create_board"  # Trello: new board
    ADD_CARDS = "add_cards"  # Trello: cards on an existing board
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Classification:
    target: Integration = Integration.NONE
    sub_command: PromptCommand = PromptCommand.NONE


CLASSIFY_PROMPT = """Decide which service the user's message is addressed to. Reply with ONLY one word:
- slack — post or send something to a Slack channel or workspace
- trello — create boards, lists or cards, manage tasks on a Trello board
- none — anything else

Examples:
"Tell the team in #general that the release is out" → slack
"Make a board for the Q3 roadmap" → trello
"Add a card Fix login to the Sprint board" → trello
"Hello, how are you?" → none

Message: {message}

Answer (one word):"""

SLACK_PATTERNS = (
    re.compile(r"\bslack\b"),
    re.compile(r"\b(post|send|share|announce|notify)\w*\b.*(#[\w-]+|\bchannel\b)"),
)

TRELLO_PATTERNS = (
    re.compile(r"\btrello\b"),
    re.compile(r"\bboards?\b"),
    re.compile(r"\bcards?\b"),
)

ADD_CARDS_PATTERNS = (
    re.compile(r"\b(add|create|put|make|new)\w*\b.*\bcards?\b"),
    re.compile(r"\bcards?\b.*\b(to|on|into|in)\b.*\bboard\b"),
)

CREATE_BOARD_PATTERNS = (
    re.compile(r"\b(create|make|new|start|open|set ?up)\w*\b.*\bboard\b"),
    re.compile(r"\bboard\b.*\b(called|named|titled)\b"),
)

_llm_provider: Optional[OpenAIProvider] = None


def normalize_for_matching(text: str) -> str:
    """Normalize text for keyword matching (casefold + collapse whitespace + trim punctuation)."""
    if not text:
        return ""

    normalized = text.strip().casefold()
    normalized = re.sub(r"\s+", " ", normalized)
    normalized = re.sub(r"^[^\w#]+|[^\w]+$", "", normalized)
    return normalized


def get_llm_provider() -> Optional[OpenAIProvider]:
    """Get or create LLM provider instance; None when no API key is configured."""
    global _llm_provider
    if not settings.openai_api_key:
        return None
    if _llm_provider is None:
        _llm_provider = OpenAIProvider(api_key=settings.openai_api_key, default_model=settings.classifier_model)
    return _llm_provider


def is_slack_message(text: str) -> bool:
    normalized = normalize_for_matching(text)
    if not normalized:
        return False
    return any(pattern.search(normalized) for pattern in SLACK_PATTERNS)


def is_trello_message(text: str) -> bool:
    normalized = normalize_for_matching(text)
    if not normalized:
        return False
    return any(pattern.search(normalized) for pattern in TRELLO_PATTERNS)


def match_target(text: str) -> Optional[Integration]:
    """Keyword decision. None means the heuristics could not tell."""
    slack = is_slack_message(text)
    trello = is_trello_message(text)
    if slack and trello:
        return Integration.NONE
    if slack:
        return Integration.SLACK
    if trello:
        return Integration.TRELLO
    return None


def parse_llm_label(content: str) -> Integration:
    label = normalize_for_matching(content).split(" ")[0] if content else ""
    try:
        return Integration(label)
    except ValueError:
        return Integration.NONE


async def classify_with_llm(text: str) -> Integration:
    """Ask the LLM for the target service. Any failure resolves to NONE.

    Every answer, the NONE fallback included, is cached for the normalised
    text, so identical text keeps its target until the entry expires.
    """
    llm = get_llm_provider()
    if llm is None:
        return Integration.NONE

    cache = get_classifier_cache()
    key = build_cache_key(normalize_for_matching(text))
    cached = await cache.get(key)
    if cached is not None:
        return parse_llm_label(cached)

    messages = [{"role": "user", "content": CLASSIFY_PROMPT.format(message=text)}]
    llm_start = time.monotonic()
    try:
        response = await llm.generate(
            messages,
            temperature=0.0,
            max_tokens=5,
            timeout_seconds=settings.classifier_timeout_seconds,
        )
    except httpx.TimeoutException as exc:
        logger.warning(f"Classifier LLM timeout after {settings.classifier_timeout_seconds}s: {exc}")
        target = Integration.NONE
    except Exception as exc:
        logger.error(f"Classifier LLM failed: {exc}")
        target = Integration.NONE
    else:
        target = parse_llm_label(response.content)
        logger.info(
            "Timing",
            extra={
                "context": {
                    "stage": "classifier_llm_ms",
                    "elapsed_ms": round((time.monotonic() - llm_start) * 1000, 2),
                    "model_name": response.model,
                    "target": target.value,
                }
            },
        )

    await cache.set(key, target.value)
    return target


async def classify_target(text: str) -> Integration:
    target = match_target(text)
    if target is not None:
        return target
    return await classify_with_llm(text)


def classify_sub_command(target: Integration, text: str) -> PromptCommand:
    """Pick the command inside the target service; never raises."""
    if target == Integration.NONE:
        return PromptCommand.NONE

    if target == Integration.SLACK:
        return PromptCommand.POST_MESSAGE

    normalized = normalize_for_matching(text)
    if any(pattern.search(normalized) for pattern in ADD_CARDS_PATTERNS):
        return PromptCommand.ADD_CARDS
    if any(pattern.search(normalized) for pattern in CREATE_BOARD_PATTERNS):
        return PromptCommand.CREATE_BOARD
    return PromptCommand.UNKNOWN


async def classify(text: str) -> Classification:
    target = await classify_target(text)
    sub_command = classify_sub_command(target, text)
    return Classification(target=target, sub_command=sub_command)
