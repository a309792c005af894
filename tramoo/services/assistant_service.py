"""Travel assistant backed by the Gemini generateContent REST API."""
import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

import httpx

from tramoo.core.config import settings

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
FALLBACK_REPLY = "Sorry, I am having trouble connecting right now. Please try again later."
GENERATION_CONFIG = {"maxOutputTokens": 500, "temperature": 0.7, "topP": 0.9, "topK": 40}


class ChatTurn(Protocol):
    sender: str
    message: str


class TravelAssistant(Protocol):
    async def reply(self, history: Sequence[ChatTurn], message: str) -> str:
        ...


def build_contents(history: Sequence[ChatTurn], message: str) -> list[dict]:
    """Gemini conversation payload. It has to open with a user turn."""
    contents = [
        {"role": "user" if turn.sender == "user" else "model", "parts": [{"text": turn.message}]}
        for turn in history
    ]
    while contents and contents[0]["role"] != "user":
        contents.pop(0)
    if not contents or contents[-1]["parts"][0]["text"] != message:
        contents.append({"role": "user", "parts": [{"text": message}]})
    return contents


class GeminiAssistant:
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_attempts: int | None = None,
        backoff_seconds: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL
        self.max_attempts = max_attempts or settings.ASSISTANT_MAX_ATTEMPTS
        self.backoff_seconds = backoff_seconds
        self._transport = transport

    async def _generate(self, client: httpx.AsyncClient, contents: list[dict]) -> str:
        response = await client.post(
            GEMINI_URL.format(model=self.model),
            params={"key": self.api_key},
            json={"contents": contents, "generationConfig": GENERATION_CONFIG},
        )
        response.raise_for_status()
        return response.json()["candidates"][0]["content"]["parts"][0]["text"]

    async def reply(self, history: Sequence[ChatTurn], message: str) -> str:
        """Ask Gemini, retrying with linear backoff. Never raises; falls back to an apology."""
        if not self.api_key:
            logger.warning("GEMINI_API_KEY not set; assistant replies with the fallback text")
            return FALLBACK_REPLY
        contents = build_contents(history, message)
        async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    return await self._generate(client, contents)
                except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
                    logger.warning("Gemini request failed (attempt %d/%d): %s", attempt, self.max_attempts, e)
                    if attempt < self.max_attempts:
                        await asyncio.sleep(self.backoff_seconds * attempt)
        return FALLBACK_REPLY


def get_assistant() -> TravelAssistant:
    return GeminiAssistant()
