from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.services import classifier_service
from app.services.classifier_cache import get_classifier_cache
from app.services.classifier_service import (
    Classification,
    Integration,
    PromptCommand,
    classify,
    classify_sub_command,
    classify_target,
    is_slack_message,
    is_trello_message,
    match_target,
    normalize_for_matching,
    parse_llm_label,
)
from app.services.llm import LLMResponse


class TestEnums:
    def test_integrations_defined(self):
        assert {i.value for i in Integration} == {"none", "slack", "trello"}

    def test_prompt_commands_defined(self):
        assert {c.value for c in PromptCommand} == {
            "none",
            "post_message",
            "create_board",
            "add_cards",
            "unknown",
        }


class TestNormalize:
    def test_casefolds_and_trims_punctuation(self):
        assert normalize_for_matching("  Post to SLACK!!  ") == "post to slack"

    def test_keeps_leading_channel_hash(self):
        assert normalize_for_matching("#general hello") == "#general hello"

    def test_empty(self):
        assert normalize_for_matching("") == ""


class TestTargetHeuristics:
    def test_detects_slack_by_name(self):
        assert is_slack_message("post to slack: deploy finished") is True

    def test_detects_slack_by_channel(self):
        assert is_slack_message("send the release notes to #dev") is True

    def test_detects_trello_by_board(self):
        assert is_trello_message("create a board called Roadmap") is True

    def test_detects_trello_by_card(self):
        assert is_trello_message("add cards Design, Build to board Roadmap") is True

    def test_plain_text_matches_nothing(self):
        assert match_target("hello") is None

    def test_both_families_is_ambiguous(self):
        assert match_target("send the trello board link to #general") == Integration.NONE


class TestSubCommand:
    def test_none_target(self):
        assert classify_sub_command(Integration.NONE, "hello") == PromptCommand.NONE

    def test_slack_posts_message(self):
        assert classify_sub_command(Integration.SLACK, "post to slack: hi") == PromptCommand.POST_MESSAGE

    def test_trello_create_board(self):
        assert classify_sub_command(Integration.TRELLO, "create a trello board called Roadmap") == (
            PromptCommand.CREATE_BOARD
        )

    def test_trello_add_cards(self):
        assert classify_sub_command(Integration.TRELLO, "add cards Design, Build to board Roadmap") == (
            PromptCommand.ADD_CARDS
        )

    def test_trello_add_card_wins_over_board(self):
        assert classify_sub_command(Integration.TRELLO, "put a card Fix login on the Sprint board") == (
            PromptCommand.ADD_CARDS
        )

    def test_trello_unrecognized(self):
        assert classify_sub_command(Integration.TRELLO, "show my trello boards") == PromptCommand.UNKNOWN


class TestClassify:
    @pytest.mark.asyncio
    async def test_plain_text_without_llm_is_none(self):
        assert await classify("hello") == Classification(Integration.NONE, PromptCommand.NONE)

    @pytest.mark.asyncio
    async def test_trello_board(self):
        result = await classify("Create a Trello board called Roadmap")
        assert result == Classification(Integration.TRELLO, PromptCommand.CREATE_BOARD)

    @pytest.mark.asyncio
    async def test_deterministic_for_same_text(self):
        first = await classify("add cards A, B to board Sprint")
        second = await classify("add cards A, B to board Sprint")
        assert first == second


class TestLLMFallback:
    def test_parse_label(self):
        assert parse_llm_label("Trello.") == Integration.TRELLO
        assert parse_llm_label("slack") == Integration.SLACK
        assert parse_llm_label("I think it is jira") == Integration.NONE
        assert parse_llm_label("") == Integration.NONE

    @pytest.mark.asyncio
    async def test_llm_used_when_heuristics_undecided(self):
        provider = AsyncMock()
        provider.generate.return_value = LLMResponse(content="slack", model="gpt-5-mini")

        with patch.object(classifier_service, "get_llm_provider", return_value=provider):
            assert await classify_target("let the team know the release is out") == Integration.SLACK

        provider.generate.assert_awaited_once()
        assert provider.generate.call_args.kwargs["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_llm_answer_is_memoised(self):
        provider = AsyncMock()
        provider.generate.return_value = LLMResponse(content="trello", model="gpt-5-mini")

        with patch.object(classifier_service, "get_llm_provider", return_value=provider):
            await classify_target("plan the sprint")
            await classify_target("Plan the sprint!")

        assert provider.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_llm_not_called_when_heuristics_decide(self):
        provider = AsyncMock()
        with patch.object(classifier_service, "get_llm_provider", return_value=provider):
            assert await classify_target("post to slack: hi") == Integration.SLACK
        provider.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_llm_timeout_falls_back_to_none(self):
        provider = AsyncMock()
        provider.generate.side_effect = httpx.ReadTimeout("timed out")

        with patch.object(classifier_service, "get_llm_provider", return_value=provider):
            assert await classify_target("what should we do today") == Integration.NONE

    @pytest.mark.asyncio
    async def test_llm_error_falls_back_to_none(self):
        provider = AsyncMock()
        provider.generate.side_effect = Exception("OpenAI API error: 500")

        with patch.object(classifier_service, "get_llm_provider", return_value=provider):
            assert await classify_target("what should we do today") == Integration.NONE

    def test_no_provider_without_api_key(self):
        assert classifier_service.get_llm_provider() is None

    @pytest.mark.asyncio
    async def test_fallback_answer_is_kept_for_same_text(self):
        provider = AsyncMock()
        provider.generate.side_effect = [
            httpx.ReadTimeout("timed out"),
            LLMResponse(content="slack", model="gpt-5-mini"),
        ]

        with patch.object(classifier_service, "get_llm_provider", return_value=provider):
            first = await classify_target("ping the team about lunch")
            second = await classify_target("ping the team about lunch")

        assert first == second == Integration.NONE
        assert provider.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_cache_stays_bounded(self):
        provider = AsyncMock()
        provider.generate.return_value = LLMResponse(content="none", model="gpt-5-mini")
        cache = get_classifier_cache()

        with patch.object(classifier_service, "get_llm_provider", return_value=provider):
            for i in range(cache.max_size * 3):
                await classify_target(f"question number {i}")

        assert len(cache) == cache.max_size
