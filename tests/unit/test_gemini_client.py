"""Unit tests for GeminiClient."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.exceptions.ai import (
    AIConfigurationError,
    AIContentFilterError,
    AIQuotaExceededError,
    AIRateLimitError,
    AIServiceError,
    AIServiceUnavailableError,
)
from app.services.gemini_client import GeminiClient


def make_response(text: str = '{"title": "시험 불안 상담"}', finish_reason: int = 1):
    response = MagicMock()
    response.text = text
    candidate = MagicMock()
    candidate.finish_reason = finish_reason
    response.candidates = [candidate]
    return response


@pytest.mark.asyncio
class TestGeminiClient:
    """Test cases for GeminiClient."""

    @pytest.fixture
    def mock_genai(self):
        """Mock google.generativeai module."""
        with patch("app.services.gemini_client.genai") as mock:
            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(return_value=make_response())
            mock.GenerativeModel.return_value = mock_model
            yield mock

    async def test_requires_api_key(self):
        with patch("app.services.gemini_client.settings.gemini_api_key", None):
            with pytest.raises(AIConfigurationError) as exc_info:
                GeminiClient()
        assert "API key not configured" in exc_info.value.message

    async def test_generate_content(self, mock_genai):
        client = GeminiClient(api_key="test-key")

        text = await client.generate_content("prompt")

        assert text == '{"title": "시험 불안 상담"}'
        mock_genai.configure.assert_called_once_with(api_key="test-key")
        model = mock_genai.GenerativeModel.return_value
        model.generate_content_async.assert_awaited_once_with("prompt")

    async def test_chat_passes_history(self, mock_genai):
        chat_session = MagicMock()
        chat_session.send_message_async = AsyncMock(return_value=make_response("안녕하세요"))
        mock_genai.GenerativeModel.return_value.start_chat.return_value = chat_session
        client = GeminiClient(api_key="test-key")

        text = await client.chat(
            [{"role": "user", "content": "hi"}, {"role": "system", "content": "x"}, {"role": "model", "content": "hello"}],
            "질문",
            system_instruction="mentor",
        )

        assert text == "안녕하세요"
        mock_genai.GenerativeModel.return_value.start_chat.assert_called_once_with(
            history=[{"role": "user", "parts": ["hi"]}, {"role": "model", "parts": ["hello"]}]
        )
        assert mock_genai.GenerativeModel.call_args.kwargs["system_instruction"] == "mentor"

    async def test_safety_block(self, mock_genai):
        mock_genai.GenerativeModel.return_value.generate_content_async.return_value = make_response(finish_reason=3)

        with pytest.raises(AIContentFilterError):
            await GeminiClient(api_key="test-key").generate_content("prompt")

    async def test_empty_text(self, mock_genai):
        mock_genai.GenerativeModel.return_value.generate_content_async.return_value = make_response(text="  ")

        with pytest.raises(AIServiceError):
            await GeminiClient(api_key="test-key").generate_content("prompt")

    async def test_generic_failure_is_mapped(self, mock_genai):
        mock_genai.GenerativeModel.return_value.generate_content_async.side_effect = RuntimeError("boom")

        with pytest.raises(AIServiceError) as exc_info:
            await GeminiClient(api_key="test-key").generate_content("prompt")
        assert "boom" in exc_info.value.message


class TestErrorMapping:
    """Test cases for mapping SDK errors onto application errors."""

    @pytest.fixture
    def client(self):
        with patch("app.services.gemini_client.genai"):
            yield GeminiClient(api_key="test-key")

    def test_quota(self, client):
        error = client._map_error(Exception("429 You exceeded your current quota. Please retry in 12.5s"))
        assert isinstance(error, AIQuotaExceededError)
        assert error.details["retry_after"] == 13

    def test_rate_limit(self, client):
        error = client._map_error(Exception("429 Too Many Requests"))
        assert isinstance(error, AIRateLimitError)

    def test_safety(self, client):
        assert isinstance(client._map_error(Exception("Response blocked by safety")), AIContentFilterError)

    def test_unavailable(self, client):
        assert isinstance(client._map_error(Exception("503 The model is overloaded")), AIServiceUnavailableError)

    def test_app_errors_pass_through(self, client):
        original = AIServiceError("already mapped")
        assert client._map_error(original) is original
