"""
HTTP backend for the fortune services.

Posts JSON to the game API with aiohttp. Every transport, HTTP status or
validation failure is re-raised as the ServiceError subclass matching the
call, with the original exception chained.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp
from dotenv import load_dotenv
from pydantic import ValidationError

from constants import (
    CHAT_ENDPOINT,
    FORTUNE_API_BASE_URL,
    FORTUNE_API_KEY,
    FORTUNE_API_TIMEOUT_SECONDS,
    GIFT_ENDPOINT,
    INTERPRET_ENDPOINT,
    SAVE_READING_ENDPOINT,
)
from exceptions import (
    ChatServiceUnavailable,
    GiftGenerationFailed,
    InterpretationFailed,
    PersistenceFailed,
    ServiceError,
)
from metrics import track_error, track_service_call
from services.base import FortuneBackend
from services.schemas import (
    ChatTurnRequest,
    ChatTurnResponse,
    GiftRequest,
    InterpretationPayload,
    InterpretationRequest,
    ReadingRecord,
)

load_dotenv()

logger = logging.getLogger(__name__)


class HttpFortuneBackend(FortuneBackend):
    """
    aiohttp implementation of FortuneBackend.

    A ClientSession is created lazily on first use and reused until close().
    """

    def __init__(
        self,
        base_url: str = FORTUNE_API_BASE_URL,
        api_key: str | None = FORTUNE_API_KEY,
        timeout_seconds: float = FORTUNE_API_TIMEOUT_SECONDS,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=self._headers())
            self._owns_session = True
        return self._session

    async def _post(
        self, endpoint: str, payload: dict[str, Any], operation: str, error_cls: type[ServiceError]
    ) -> Any:
        """
        POST a JSON payload and return the decoded JSON body.

        Raises:
            error_cls: On connection errors, timeouts, non-2xx status or a non-JSON body
        """
        url = f"{self.base_url}{endpoint}"
        try:
            with track_service_call(operation):
                async with self._get_session().post(url, json=payload) as response:
                    response.raise_for_status()
                    return await response.json(content_type=None)
        except aiohttp.ClientResponseError as e:
            track_error(error_cls.__name__)
            raise error_cls(f"{operation} returned HTTP {e.status}: {e.message}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            track_error(error_cls.__name__)
            raise error_cls(f"{operation} request failed: {e.__class__.__name__}: {e}") from e
        except ValueError as e:
            track_error(error_cls.__name__)
            raise error_cls(f"{operation} returned an invalid body: {e}") from e

    async def send_chat_turn(self, request: ChatTurnRequest) -> ChatTurnResponse:
        body = await self._post(CHAT_ENDPOINT, request.model_dump(), "chat_turn", ChatServiceUnavailable)
        try:
            return ChatTurnResponse.model_validate(body)
        except ValidationError as e:
            raise ChatServiceUnavailable(f"Malformed chat reply: {e}") from e

    async def interpret_cards(self, request: InterpretationRequest) -> InterpretationPayload:
        body = await self._post(INTERPRET_ENDPOINT, request.model_dump(), "interpret", InterpretationFailed)
        if isinstance(body, dict) and "interpretation" in body:
            body = body["interpretation"]
        try:
            return InterpretationPayload.model_validate(body)
        except ValidationError as e:
            raise InterpretationFailed(f"Malformed interpretation: {e}") from e

    async def save_reading(self, record: ReadingRecord) -> None:
        await self._post(SAVE_READING_ENDPOINT, record.model_dump(), "save_reading", PersistenceFailed)

    async def generate_gift(self, request: GiftRequest) -> None:
        await self._post(GIFT_ENDPOINT, request.model_dump(), "gift", GiftGenerationFailed)

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
            logger.debug("Closed fortune API client session")
        self._session = None
