"""API tests for POST /api/chat."""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import select

from app.exceptions.ai import AIServiceError
from app.main import app
from app.shared.rate_limit import SlidingWindowRateLimiter
from models import SafetyAlert

REPLY = "시험 전에 긴장하는 건 자연스러운 일이에요. 오늘 공부할 분량을 작게 나눠 보면 마음이 조금 편해질 거예요."


@pytest.fixture
def gemini():
    client = MagicMock()
    client.chat = AsyncMock(return_value=REPLY)
    return client


@pytest.fixture(autouse=True)
def no_background_refresh():
    with patch("app.domains.chat.controller.refresh_session_metadata", new=AsyncMock()) as refresh:
        yield refresh


@pytest.mark.asyncio
class TestChatEndpoint:
    """Test cases for the mentor chat endpoint."""

    async def test_new_session(self, student_client, gemini, no_background_refresh):
        with patch("app.domains.chat.service.GeminiClient", return_value=gemini):
            response = await student_client.post("/api/chat", json={"message": "시험이 너무 걱정돼요"})

        assert response.status_code == 200
        data = response.json()
        assert uuid.UUID(data["sessionId"])
        assert data["text"]
        assert data["targetLen"] > 0
        assert data["deep"] is False
        assert data["safetyAlert"] is False
        no_background_refresh.assert_awaited_once_with(uuid.UUID(data["sessionId"]))

    async def test_existing_session(self, student_client, test_session, gemini):
        with patch("app.domains.chat.service.GeminiClient", return_value=gemini):
            response = await student_client.post(
                "/api/chat", json={"sessionId": str(test_session.id), "message": "수학이 제일 어려워요"}
            )

        assert response.status_code == 200
        assert response.json()["sessionId"] == str(test_session.id)

    async def test_safety_alert(self, student_client, test_db, gemini):
        with patch("app.domains.chat.service.GeminiClient", return_value=gemini):
            response = await student_client.post("/api/chat", json={"message": "요즘 자해 생각이 나요"})

        assert response.status_code == 200
        assert response.json()["safetyAlert"] is True
        alerts = (await test_db.execute(select(SafetyAlert))).scalars().all()
        assert len(alerts) == 1

    async def test_parent_cannot_chat(self, parent_client):
        response = await parent_client.post("/api/chat", json={"message": "안녕하세요"})

        assert response.status_code == 403
        assert response.json()["error_code"] == "PERMISSION_DENIED"

    async def test_other_students_session(self, other_student_client, test_session):
        response = await other_student_client.post(
            "/api/chat", json={"sessionId": str(test_session.id), "message": "안녕"}
        )

        assert response.status_code == 403

    async def test_empty_message(self, student_client):
        response = await student_client.post("/api/chat", json={"message": ""})

        assert response.status_code == 400

    async def test_ai_failure(self, student_client, gemini, no_background_refresh):
        gemini.chat = AsyncMock(side_effect=AIServiceError("AI generation failed: boom"))

        with patch("app.domains.chat.service.GeminiClient", return_value=gemini):
            response = await student_client.post("/api/chat", json={"message": "시험이 너무 걱정돼요"})

        assert response.status_code == 502
        assert response.json()["error_code"] == "AI_SERVICE_ERROR"
        no_background_refresh.assert_not_awaited()

    async def test_rate_limited(self, student_client, gemini):
        app.state.chat_rate_limiter = SlidingWindowRateLimiter(1, 60)

        with patch("app.domains.chat.service.GeminiClient", return_value=gemini):
            first = await student_client.post("/api/chat", json={"message": "안녕"})
            second = await student_client.post("/api/chat", json={"message": "안녕"})

        assert first.status_code == 200
        assert second.status_code == 429
        assert "Retry-After" in second.headers
