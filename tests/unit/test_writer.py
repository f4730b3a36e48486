"""Unit tests for SessionMetadataWriter."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.domains.session_meta.writer import MetadataUpdate, SessionMetadataWriter
from app.exceptions.session import SessionPersistenceError
from models import utcnow


@pytest.mark.asyncio
class TestSessionMetadataWriter:
    """Test cases for guarded metadata writes."""

    async def test_empty_update_is_noop(self, test_db, test_session):
        outcome = await SessionMetadataWriter(test_db).apply(test_session, MetadataUpdate())
        assert outcome.title_written is False
        assert outcome.summary_written is False

    async def test_writes_title_and_summary(self, test_db, test_session):
        writer = SessionMetadataWriter(test_db)
        outcome = await writer.apply(
            test_session,
            MetadataUpdate(title="시험 불안 상담", title_source="ai", summary="요약", risk_level="stable", risk_reason="안정"),
        )

        assert outcome.title_written is True
        assert test_session.title == "시험 불안 상담"
        assert test_session.title_source == "ai"
        assert test_session.title_updated_at is not None
        assert test_session.summary == "요약"
        assert test_session.summary_updated_at is not None
        assert test_session.risk_level == "stable"
        assert test_session.risk_reason == "안정"

    @pytest.mark.parametrize("source", ["ai", "manual"])
    async def test_frozen_title_is_not_overwritten(self, test_db, make_session, test_student, source):
        chat_session = await make_session(test_student, title="내 대화", title_source=source)

        outcome = await SessionMetadataWriter(test_db).apply(
            chat_session, MetadataUpdate(title="다른 제목", title_source="fallback")
        )

        assert outcome.title_written is False
        assert chat_session.title == "내 대화"
        assert chat_session.title_source == source

    async def test_caution_is_sticky(self, test_db, make_session, test_student):
        chat_session = await make_session(test_student, risk_level="caution", summary="이전 요약")

        await SessionMetadataWriter(test_db, caution_sticky=True).apply(
            chat_session, MetadataUpdate(summary="새 요약", risk_level="stable")
        )

        assert chat_session.summary == "새 요약"
        assert chat_session.risk_level == "caution"

    async def test_caution_can_drop_when_not_sticky(self, test_db, make_session, test_student):
        chat_session = await make_session(test_student, risk_level="caution")

        await SessionMetadataWriter(test_db, caution_sticky=False).apply(
            chat_session, MetadataUpdate(summary="새 요약", risk_level="normal")
        )

        assert chat_session.risk_level == "normal"

    async def test_escalation_to_caution(self, test_db, test_session):
        await SessionMetadataWriter(test_db).apply(test_session, MetadataUpdate(risk_level="caution"))
        assert test_session.risk_level == "caution"

    async def test_database_error_rolls_back(self, test_db, test_session):
        writer = SessionMetadataWriter(test_db)
        failure = OperationalError("UPDATE chat_sessions", {}, Exception("database is locked"))

        with patch.object(test_db, "execute", AsyncMock(side_effect=failure)), patch.object(
            test_db, "rollback", AsyncMock()
        ) as rollback:
            with pytest.raises(SessionPersistenceError) as exc_info:
                await writer.apply(test_session, MetadataUpdate(summary="요약"))

        rollback.assert_awaited_once()
        assert exc_info.value.status_code == 503
        assert exc_info.value.retryable is True

    async def test_topic_tags_written_with_summary(self, test_db, test_session):
        await SessionMetadataWriter(test_db).apply(
            test_session, MetadataUpdate(summary="요약", topic_tags=["시험", "불안"], risk_level="normal")
        )

        assert test_session.topic_tags == ["시험", "불안"]

    async def test_topic_tags_need_a_summary(self, test_db, test_session):
        await SessionMetadataWriter(test_db).apply(
            test_session, MetadataUpdate(risk_level="stable", topic_tags=["시험"])
        )

        assert test_session.topic_tags is None

    async def test_record_failure(self, test_db, test_session):
        recorded = await SessionMetadataWriter(test_db).record_failure(test_session.id, "SUMMARY_GENERATION_FAILED")

        assert recorded is True
        await test_db.refresh(test_session)
        assert test_session.meta_error_at is not None
        assert test_session.meta_error_code == "SUMMARY_GENERATION_FAILED"

    async def test_successful_write_clears_failure(self, test_db, make_session, test_student):
        chat_session = await make_session(test_student, meta_error_at=utcnow(), meta_error_code="gemini_error")

        await SessionMetadataWriter(test_db).apply(chat_session, MetadataUpdate(summary="새 요약"))

        assert chat_session.meta_error_at is None
        assert chat_session.meta_error_code is None

    async def test_record_failure_reports_database_error(self, test_db, test_session):
        failure = OperationalError("UPDATE chat_sessions", {}, Exception("database is locked"))

        with patch.object(test_db, "execute", AsyncMock(side_effect=failure)), patch.object(
            test_db, "rollback", AsyncMock()
        ) as rollback:
            recorded = await SessionMetadataWriter(test_db).record_failure(test_session.id, "gemini_error")

        assert recorded is False
        rollback.assert_awaited_once()
