"""API tests for the operator backfill endpoint."""

from unittest.mock import patch

import pytest

from models.chat_session import UNTITLED

URL = "/api/admin/backfill-chat-metadata"
ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}


@pytest.mark.asyncio
class TestBackfillEndpoint:
    """Test cases for POST /api/admin/backfill-chat-metadata."""

    async def test_missing_token(self, client):
        response = await client.post(URL, json={})

        assert response.status_code == 401

    async def test_wrong_token(self, client):
        response = await client.post(URL, json={}, headers={"X-Admin-Token": "nope"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    async def test_disabled_without_configured_token(self, client):
        with patch("app.core.dependencies.settings.backfill_admin_token", None):
            response = await client.post(URL, json={}, headers=ADMIN_HEADERS)

        assert response.status_code == 403

    async def test_empty_database(self, client):
        response = await client.post(URL, headers=ADMIN_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data == {"dryRun": False, "limit": 50, "scanned": 0, "updated": 0, "results": []}

    async def test_limit_clamped(self, client):
        response = await client.post(URL, json={"limit": 100000}, headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.json()["limit"] == 500

    async def test_non_numeric_limit_uses_default(self, client):
        response = await client.post(URL, json={"limit": "many"}, headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.json()["limit"] == 50

    async def test_dry_run(self, client, test_db, test_session, make_session, test_student, add_messages, mock_gemini):
        await add_messages(test_session, ["시험 때문에 너무 불안해요", "어떤 과목이 제일 걱정돼요?"])
        empty_session = await make_session(test_student)

        with patch("app.domains.session_meta.pipeline.GeminiClient", return_value=mock_gemini):
            response = await client.post(URL, json={"dryRun": True}, headers=ADMIN_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["dryRun"] is True
        assert data["scanned"] == 2
        assert data["updated"] == 1

        by_id = {item["session_id"]: item for item in data["results"]}
        item = by_id[str(test_session.id)]
        assert item["status"] == "dry_run_update"
        assert item["next"]["title"] == "시험 불안 상담"
        assert by_id[str(empty_session.id)]["status"] == "skipped_no_transcript"

        await test_db.refresh(test_session)
        assert test_session.title == UNTITLED
        assert test_session.summary is None
