"""
Gemini API client for question generation, answer scoring and summaries.

Handles HTTP communication with the Generative Language API, including
retry with exponential backoff on timeouts and server errors.
"""

from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from mockinterview.core.errors import GeminiError

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


@dataclass
class GenerationConfig:
    """Sampling parameters for a single request."""

    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 1024

    def to_dict(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


class GeminiClient:
    """Async HTTP client for the generateContent endpoint."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-2.0-flash",
        timeout_seconds: float = 15.0,
        retry_attempts: int = 2,
        backoff_seconds: float = 0.5,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: API key; None or blank marks the client unavailable
            base_url: Base URL for the Generative Language API
            model: Model name used in the endpoint path
            timeout_seconds: Request timeout
            retry_attempts: Number of attempts on retryable failures
            backoff_seconds: Base delay for exponential backoff
            client: Optional pre-built httpx client (tests)
        """
        self.api_key = (api_key or "").strip()
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.retry_attempts = max(1, retry_attempts)
        self.backoff_seconds = backoff_seconds
        self._key_rejected = False
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def is_available(self) -> bool:
        """
        Whether a remote call is worth attempting right now.

        False when no key is configured, or when the API has rejected the key
        (HTTP 401/403) during this process.
        """
        return bool(self.api_key) and not self._key_rejected

    async def generate(self, prompt: str, config: GenerationConfig | None = None) -> str:
        """
        Generate text for a prompt.

        Returns:
            Text of the first candidate

        Raises:
            GeminiError: unavailable, client error, malformed payload, or retries exhausted
        """
        if not self.is_available():
            raise GeminiError("Gemini API key is not configured or was rejected")

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": (config or GenerationConfig()).to_dict(),
        }
        url = f"{self.base_url}/models/{self.model}:generateContent"
        last_error: Exception | None = None

        for attempt in range(self.retry_attempts):
            try:
                response = await self.client.post(url, params={"key": self.api_key}, json=payload)
                response.raise_for_status()
                return self._extract_text(response.json())

            except httpx.TimeoutException as e:
                last_error = e
                logger.warning(f"Gemini timeout on attempt {attempt + 1}/{self.retry_attempts}")

            except httpx.HTTPStatusError as e:
                last_error = e
                status = e.response.status_code
                if status in (401, 403):
                    self._key_rejected = True
                    logger.error(f"Gemini rejected the API key ({status}); remote calls disabled")
                    raise GeminiError("Gemini API key rejected", status_code=status) from e
                if status < 500 and status != 429:
                    logger.error(f"Gemini client error: {status}")
                    raise GeminiError(f"Gemini request failed: {status}", status_code=status) from e
                logger.warning(
                    f"Gemini server error {status} on attempt {attempt + 1}/{self.retry_attempts}"
                )

            except httpx.RequestError as e:
                last_error = e
                logger.warning(
                    f"Gemini request error on attempt {attempt + 1}/{self.retry_attempts}: {e}"
                )

            if attempt < self.retry_attempts - 1:
                await asyncio.sleep(self.backoff_seconds * 2**attempt)

        raise GeminiError(f"Gemini call failed after {self.retry_attempts} attempts: {last_error}")

    async def generate_json(self, prompt: str, config: GenerationConfig | None = None) -> Any:
        """Generate and parse the first JSON object or array in the reply."""
        text = await self.generate(prompt, config)
        return extract_json(text)

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise GeminiError(f"Unexpected Gemini response shape: {e}") from e


def extract_json(text: str) -> Any:
    """
    Pull the first JSON object or array out of model output.

    Models often wrap JSON in prose or code fences; whichever bracket opens
    first decides whether an object or an array is expected.

    Raises:
        GeminiError: no parseable JSON found
    """
    obj_start = text.find("{")
    arr_start = text.find("[")
    if arr_start != -1 and (obj_start == -1 or arr_start < obj_start):
        patterns = (_JSON_ARRAY, _JSON_OBJECT)
    else:
        patterns = (_JSON_OBJECT, _JSON_ARRAY)

    for pattern in patterns:
        match = pattern.search(text)
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                continue
    raise GeminiError("No JSON payload found in model output")
