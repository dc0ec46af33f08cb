"""
Tests for the aiohttp backend.

The ClientSession is replaced by a mock so no network is used.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, Mock

import aiohttp
import pytest

from exceptions import (
    ChatServiceUnavailable,
    GiftGenerationFailed,
    InterpretationFailed,
    PersistenceFailed,
)
from services.http_backend import HttpFortuneBackend
from services.schemas import ChatTurnRequest, GiftRequest, ReadingRecord


def _session_returning(body=None, error=None):
    """Mock ClientSession whose post() yields one response."""
    response = Mock()
    response.raise_for_status = Mock(side_effect=error)
    response.json = AsyncMock(return_value=body)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = Mock()
    session.closed = False
    session.post = Mock(return_value=context)
    session.close = AsyncMock()
    return session


def _session_raising(exc):
    session = Mock()
    session.closed = False
    session.post = Mock(side_effect=exc)
    return session


def _backend(session):
    return HttpFortuneBackend(base_url="http://fortune.test/", api_key="k", session=session)


class TestChatTurn:
    @pytest.mark.asyncio
    async def test_posts_to_chat_endpoint(self):
        session = _session_returning({"sage_response": "Hello there", "conversation_summary": "s"})
        backend = _backend(session)

        response = await backend.send_chat_turn(ChatTurnRequest.build([], "hi"))

        assert response.reply_text == "Hello there"
        assert response.summary == "s"
        url = session.post.call_args.args[0]
        assert url == "http://fortune.test/api/game/tarot/chat"
        assert session.post.call_args.kwargs["json"]["new_message"] == "hi"

    @pytest.mark.asyncio
    async def test_http_error_becomes_chat_unavailable(self):
        error = aiohttp.ClientResponseError(Mock(), (), status=503, message="Service Unavailable")
        backend = _backend(_session_returning(error=error))

        with pytest.raises(ChatServiceUnavailable) as exc_info:
            await backend.send_chat_turn(ChatTurnRequest.build([], "hi"))
        assert "503" in str(exc_info.value)
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_connection_error_becomes_chat_unavailable(self):
        backend = _backend(_session_raising(aiohttp.ClientConnectionError("refused")))
        with pytest.raises(ChatServiceUnavailable):
            await backend.send_chat_turn(ChatTurnRequest.build([], "hi"))

    @pytest.mark.asyncio
    async def test_timeout_becomes_chat_unavailable(self):
        backend = _backend(_session_raising(asyncio.TimeoutError()))
        with pytest.raises(ChatServiceUnavailable):
            await backend.send_chat_turn(ChatTurnRequest.build([], "hi"))

    @pytest.mark.asyncio
    async def test_malformed_reply_becomes_chat_unavailable(self):
        backend = _backend(_session_returning({"unexpected": True}))
        with pytest.raises(ChatServiceUnavailable, match="Malformed"):
            await backend.send_chat_turn(ChatTurnRequest.build([], "hi"))


class TestInterpret:
    def _body(self, meanings=3):
        return {
            "interpretation": {
                "overall": "o",
                "card_meanings": [
                    {"card_name": "A", "position": "past", "meaning": "m"} for _ in range(meanings)
                ],
                "advice": "a",
                "summary": "s",
            }
        }

    @pytest.mark.asyncio
    async def test_unwraps_interpretation_envelope(self):
        session = _session_returning(self._body())
        http = _backend(session)
        request = Mock()
        request.model_dump = Mock(return_value={})

        payload = await http.interpret_cards(request)
        assert payload.overall == "o"
        assert len(payload.card_meanings) == 3

    @pytest.mark.asyncio
    async def test_wrong_meaning_count_is_failure(self):
        http = _backend(_session_returning(self._body(meanings=2)))
        request = Mock()
        request.model_dump = Mock(return_value={})
        with pytest.raises(InterpretationFailed):
            await http.interpret_cards(request)


class TestBestEffortCalls:
    @pytest.mark.asyncio
    async def test_save_failure_is_persistence_failed(self):
        backend = _backend(_session_raising(aiohttp.ClientConnectionError("down")))
        record = ReadingRecord(
            selected_cards=[],
            conversation_summary="",
            interpretation_summary="",
            conversation_turns=0,
            duration_seconds=0,
        )
        with pytest.raises(PersistenceFailed):
            await backend.save_reading(record)

    @pytest.mark.asyncio
    async def test_gift_failure_is_gift_generation_failed(self):
        backend = _backend(_session_raising(aiohttp.ClientConnectionError("down")))
        with pytest.raises(GiftGenerationFailed):
            await backend.generate_gift(GiftRequest(summary="s", interpretation={}))


class TestSessionHandling:
    @pytest.mark.asyncio
    async def test_injected_session_not_closed(self):
        session = _session_returning({})
        backend = _backend(session)
        await backend.close()
        session.close.assert_not_called()

    def test_auth_header(self):
        backend = HttpFortuneBackend(base_url="http://x", api_key="secret")
        assert backend._headers()["Authorization"] == "Bearer secret"
        assert "Authorization" not in HttpFortuneBackend(base_url="http://x", api_key=None)._headers()
