"""
Unit tests for the Gemini API client.
"""

import pytest
import pytest_asyncio
from httpx import Request, Response, TimeoutException

from mockinterview.core.errors import GeminiError
from mockinterview.integrations.gemini_client import GeminiClient, GenerationConfig, extract_json


def gemini_reply(text):
    """Wrap text in the generateContent response shape."""
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest_asyncio.fixture
async def client():
    """Gemini client with retries and no backoff delay."""
    client = GeminiClient(
        api_key="test-key",
        base_url="https://example.test/v1beta",
        model="gemini-test",
        retry_attempts=3,
        backoff_seconds=0,
    )
    yield client
    await client.close()


class TestExtractJson:
    """Tests for pulling JSON out of model prose."""

    def test_object_in_code_fence(self):
        text = 'Here you go:\n```json\n{"score": 8, "feedback": "Good"}\n```'
        assert extract_json(text) == {"score": 8, "feedback": "Good"}

    def test_array_with_nested_objects(self):
        text = 'Questions: [{"text": "Q1"}, {"text": "Q2"}]'
        assert extract_json(text) == [{"text": "Q1"}, {"text": "Q2"}]

    def test_no_json_raises(self):
        with pytest.raises(GeminiError):
            extract_json("I cannot help with that.")


class TestGenerationConfig:
    """Tests for request parameter serialization."""

    def test_to_dict_uses_api_field_names(self):
        data = GenerationConfig(temperature=0.3, max_output_tokens=256).to_dict()

        assert data["temperature"] == 0.3
        assert data["maxOutputTokens"] == 256
        assert data["topK"] == 40


class TestGeminiClient:
    """Tests for GeminiClient class."""

    @pytest.mark.asyncio
    async def test_generate_success(self, client, monkeypatch):
        """Test request shape and text extraction."""
        seen = {}

        async def mock_post(url, **kwargs):
            seen["url"] = url
            seen["params"] = kwargs["params"]
            seen["json"] = kwargs["json"]
            return Response(200, json=gemini_reply("hello"), request=Request("POST", url))

        monkeypatch.setattr(client.client, "post", mock_post)

        text = await client.generate("Say hello")

        assert text == "hello"
        assert seen["url"] == "https://example.test/v1beta/models/gemini-test:generateContent"
        assert seen["params"] == {"key": "test-key"}
        assert seen["json"]["contents"][0]["parts"][0]["text"] == "Say hello"

    @pytest.mark.asyncio
    async def test_generate_json(self, client, monkeypatch):
        async def mock_post(url, **kwargs):
            reply = gemini_reply('{"score": 6, "feedback": "Fine"}')
            return Response(200, json=reply, request=Request("POST", url))

        monkeypatch.setattr(client.client, "post", mock_post)

        assert await client.generate_json("score it") == {"score": 6, "feedback": "Fine"}

    @pytest.mark.asyncio
    async def test_timeout_retry(self, client, monkeypatch):
        """Test retry logic on timeout."""
        call_count = 0

        async def mock_post(url, **kwargs):
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise TimeoutException("Timeout")
            return Response(200, json=gemini_reply("ok"), request=Request("POST", url))

        monkeypatch.setattr(client.client, "post", mock_post)

        assert await client.generate("prompt") == "ok"
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_server_error_exhausts_retries(self, client, monkeypatch):
        call_count = 0

        async def mock_post(url, **kwargs):
            nonlocal call_count
            call_count += 1
            return Response(503, json={"error": "unavailable"}, request=Request("POST", url))

        monkeypatch.setattr(client.client, "post", mock_post)

        with pytest.raises(GeminiError):
            await client.generate("prompt")
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, client, monkeypatch):
        call_count = 0

        async def mock_post(url, **kwargs):
            nonlocal call_count
            call_count += 1
            return Response(400, json={"error": "bad request"}, request=Request("POST", url))

        monkeypatch.setattr(client.client, "post", mock_post)

        with pytest.raises(GeminiError) as exc_info:
            await client.generate("prompt")
        assert exc_info.value.status_code == 400
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_rejected_key_disables_client(self, client, monkeypatch):
        """A 401/403 flips availability for the rest of the process."""
        async def mock_post(url, **kwargs):
            return Response(403, json={"error": "forbidden"}, request=Request("POST", url))

        monkeypatch.setattr(client.client, "post", mock_post)

        assert client.is_available()
        with pytest.raises(GeminiError):
            await client.generate("prompt")
        assert not client.is_available()

    @pytest.mark.asyncio
    async def test_unexpected_shape(self, client, monkeypatch):
        async def mock_post(url, **kwargs):
            return Response(200, json={"candidates": []}, request=Request("POST", url))

        monkeypatch.setattr(client.client, "post", mock_post)

        with pytest.raises(GeminiError):
            await client.generate("prompt")

    @pytest.mark.asyncio
    async def test_missing_key_unavailable(self):
        client = GeminiClient(api_key="  ")
        try:
            assert not client.is_available()
            with pytest.raises(GeminiError):
                await client.generate("prompt")
        finally:
            await client.close()
