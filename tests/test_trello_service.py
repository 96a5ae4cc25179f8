from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from app.services.errors import IntegrationError
from app.services.trello_service import TrelloService, extract_board_name, extract_cards


def _response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.text = str(payload)
    response.json.return_value = payload
    return response


def _mock_client(mock_client_class, *responses):
    mock_client = MagicMock()
    mock_client.request = AsyncMock(side_effect=list(responses))
    mock_client_class.return_value.__aenter__.return_value = mock_client
    return mock_client


class TestExtractBoardName:
    def test_called(self):
        assert extract_board_name("create a trello board called Roadmap") == "Roadmap"

    def test_quoted(self):
        assert extract_board_name('make a new board "Q3 Planning" please') == "Q3 Planning"

    def test_missing_name(self):
        with pytest.raises(IntegrationError):
            extract_board_name("create a board")


class TestExtractCards:
    def test_cards_and_board(self):
        assert extract_cards("add cards Design, Build and Test to board Roadmap") == (
            ["Design", "Build", "Test"],
            "Roadmap",
        )

    def test_single_card_board_suffix(self):
        assert extract_cards("add a card Fix login to the Sprint board") == (["Fix login"], "Sprint")

    def test_unparseable(self):
        with pytest.raises(IntegrationError):
            extract_cards("add some cards please")


class TestCreateBoard:
    @pytest.mark.asyncio
    @patch("app.services.trello_service.httpx.AsyncClient")
    async def test_creates_board_with_key_and_token(self, mock_client_class):
        mock_client = _mock_client(
            mock_client_class,
            _response({"id": "b1", "name": "Roadmap", "shortUrl": "https://trello.com/b/abc"}),
        )

        result = await TrelloService("key-1", "token-1").create_board("create a board called Roadmap")

        assert result == "Board 'Roadmap' created: https://trello.com/b/abc"
        method, url = mock_client.request.call_args[0]
        params = mock_client.request.call_args[1]["params"]
        assert method == "POST"
        assert url.endswith("/boards/")
        assert params["name"] == "Roadmap"
        assert params["key"] == "key-1"
        assert params["token"] == "token-1"

    @pytest.mark.asyncio
    @patch("app.services.trello_service.httpx.AsyncClient")
    async def test_api_error_raises(self, mock_client_class):
        _mock_client(mock_client_class, _response("invalid token", status_code=401))

        with pytest.raises(IntegrationError, match="401"):
            await TrelloService("key-1", "bad").create_board("create a board called Roadmap")


class TestAddCards:
    @pytest.mark.asyncio
    @patch("app.services.trello_service.httpx.AsyncClient")
    async def test_adds_cards_to_first_list(self, mock_client_class):
        mock_client = _mock_client(
            mock_client_class,
            _response([{"id": "b0", "name": "Other"}, {"id": "b1", "name": "Roadmap"}]),
            _response([{"id": "l1", "name": "To Do"}, {"id": "l2", "name": "Done"}]),
            _response({"id": "c1"}),
            _response({"id": "c2"}),
        )

        result = await TrelloService("key-1", "token-1").add_cards("add cards Design, Build to board roadmap")

        assert result == "Added 2 card(s) to 'Roadmap': Design, Build"
        card_calls = mock_client.request.call_args_list[2:]
        assert [call[1]["params"]["name"] for call in card_calls] == ["Design", "Build"]
        assert all(call[1]["params"]["idList"] == "l1" for call in card_calls)

    @pytest.mark.asyncio
    @patch("app.services.trello_service.httpx.AsyncClient")
    async def test_unknown_board(self, mock_client_class):
        _mock_client(mock_client_class, _response([{"id": "b0", "name": "Other"}]))

        with pytest.raises(IntegrationError, match="not found"):
            await TrelloService("key-1", "token-1").add_cards("add cards A to board Roadmap")

    @pytest.mark.asyncio
    @patch("app.services.trello_service.httpx.AsyncClient")
    async def test_board_without_lists(self, mock_client_class):
        _mock_client(
            mock_client_class,
            _response([{"id": "b1", "name": "Roadmap"}]),
            _response([]),
        )

        with pytest.raises(IntegrationError, match="no lists"):
            await TrelloService("key-1", "token-1").add_cards("add cards A to board Roadmap")
