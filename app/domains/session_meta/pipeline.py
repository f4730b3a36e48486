"""Session metadata pipeline: load, decide, generate, normalize, persist."""

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.exceptions.ai import AIServiceError
from app.exceptions.session import SessionPersistenceError, SummaryGenerationError
from app.schemas.session_meta import PipelineOutcome
from app.services.gemini_client import GeminiClient
from models.base import utcnow
from models.chat_session import UNTITLED, ChatSession, RiskLevel, TitleSource
from models.message import MessageRole

from .loader import TranscriptLoader, TranscriptTurn
from .normalizer import MetadataNormalizer
from .prompts import PromptKind, build_prompt
from .triggers import SessionSnapshot, TriggerConfig, TriggerEvaluator
from .writer import MetadataUpdate, SessionMetadataWriter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineOptions:
    """Per-caller knobs. The trigger rules are identical in every mode."""

    trigger: TriggerConfig
    title_max_length: int
    generate_summary: bool = True
    classify_risk: bool = True
    dry_run: bool = False

    @classmethod
    def fast(cls) -> "PipelineOptions":
        return cls(trigger=TriggerConfig.fast(), title_max_length=settings.title_max_length_meta)

    @classmethod
    def backfill(cls, dry_run: bool = False) -> "PipelineOptions":
        return cls(
            trigger=TriggerConfig.backfill(),
            title_max_length=settings.title_max_length_meta,
            dry_run=dry_run,
        )

    @classmethod
    def title_only(cls) -> "PipelineOptions":
        return cls(
            trigger=TriggerConfig.fast(),
            title_max_length=settings.title_max_length_session,
            generate_summary=False,
            classify_risk=False,
        )


@dataclass
class PipelineResult:
    session_id: UUID
    outcome: PipelineOutcome
    title: str
    title_source: str
    risk_level: str
    summary: str | None
    reason: str | None = None
    topic_tags: list[str] = field(default_factory=list)
    message_count: int = 0
    skip_reason: str | None = None
    changed: bool = False
    persisted: bool = False
    risk_held: bool = False
    triggers: tuple[str, ...] = field(default_factory=tuple)

    @property
    def skipped(self) -> bool:
        return self.outcome == PipelineOutcome.SKIPPED

    def next_state(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "title_source": self.title_source,
            "risk_level": self.risk_level,
            "summary": self.summary,
            "topic_tags": self.topic_tags,
        }


@dataclass(frozen=True)
class _TitleOutcome:
    title: str
    source: str
    risk_level: str | None = None
    reason: str | None = None


class SessionMetadataPipeline:
    """Compute and store title, risk level and summary for one session.

    Shared by the request fast path, the title-only endpoint and backfill;
    they differ only in :class:`PipelineOptions`. Summary failures raise
    :class:`SummaryGenerationError`, write failures raise
    :class:`SessionPersistenceError` carrying the computed result. A failed
    title call never fails the run: a fallback title is used instead.
    """

    def __init__(
        self,
        db: AsyncSession,
        options: PipelineOptions | None = None,
        gemini_client: GeminiClient | None = None,
    ):
        self.db = db
        self.options = options or PipelineOptions.fast()
        self._gemini = gemini_client
        self.loader = TranscriptLoader(db)
        self.evaluator = TriggerEvaluator(self.options.trigger)
        self.normalizer = MetadataNormalizer(title_max_length=self.options.title_max_length)
        self.writer = SessionMetadataWriter(db)

    @property
    def gemini(self) -> GeminiClient:
        # Created on first LLM call so skipped runs work without an API key
        if self._gemini is None:
            self._gemini = GeminiClient()
        return self._gemini

    async def run(
        self,
        chat_session: ChatSession,
        transcript_payload: list[Any] | None = None,
        first_message: str | None = None,
    ) -> PipelineResult:
        session_id = chat_session.id
        transcript = await self.loader.load_for_session(chat_session)

        turns = transcript.turns
        message_count = transcript.message_count
        if not turns:
            turns = self.loader.from_payload(transcript_payload)
            if not turns and first_message and first_message.strip():
                turns = [TranscriptTurn(role=MessageRole.USER.value, content=self.loader.clip(first_message))]
            message_count = message_count or len(turns)

        if not turns:
            logger.info(f"Session {session_id} has no transcript, skipping metadata")
            return self._skipped(chat_session, message_count, "no_transcript")

        snapshot = SessionSnapshot(
            summary=chat_session.summary,
            title_source=chat_session.title_source,
            has_user_turn=any(t.role == MessageRole.USER.value for t in turns),
            message_count=message_count,
            last_activity_at=transcript.last_activity_at,
        )
        decision = self.evaluator.evaluate(snapshot, now=utcnow())
        if not self.options.generate_summary:
            decision = decision.without_summary()

        if not decision.should_run:
            return self._skipped(chat_session, message_count, self._skip_reason(chat_session))

        logger.info(f"Refreshing metadata for session {session_id}: {', '.join(decision.reasons)}")

        title_outcome = None
        if decision.title:
            title_outcome = await self._generate_title(chat_session, turns, first_message)

        summary = None
        if decision.summarize:
            summary = await self._generate_summary(chat_session, turns)

        next_risk, reason = None, None
        if summary is not None:
            next_risk, reason = summary.risk_level, summary.reason
        elif title_outcome is not None and self.options.classify_risk and title_outcome.risk_level:
            next_risk, reason = title_outcome.risk_level, title_outcome.reason

        risk_level, risk_held = self._resolve_risk(chat_session, next_risk)
        if risk_held:
            next_risk, reason = None, chat_session.risk_reason

        result = PipelineResult(
            session_id=session_id,
            outcome=PipelineOutcome.COMPLETED,
            title=title_outcome.title if title_outcome else chat_session.title,
            title_source=title_outcome.source if title_outcome else chat_session.title_source,
            risk_level=risk_level,
            summary=summary.summary if summary else chat_session.summary,
            reason=reason if reason is not None else chat_session.risk_reason,
            topic_tags=summary.topic_tags if summary else list(chat_session.topic_tags or []),
            message_count=message_count,
            risk_held=risk_held,
            triggers=decision.reasons,
        )

        changes = MetadataUpdate()
        if title_outcome and (
            title_outcome.title != chat_session.title or title_outcome.source != chat_session.title_source
        ):
            changes.title, changes.title_source = title_outcome.title, title_outcome.source
        if summary and (
            summary.summary != chat_session.summary or summary.topic_tags != (chat_session.topic_tags or [])
        ):
            changes.summary, changes.topic_tags = summary.summary, summary.topic_tags
        if next_risk is not None and (risk_level != chat_session.risk_level or reason != chat_session.risk_reason):
            changes.risk_level, changes.risk_reason = next_risk, reason

        result.changed = not changes.is_empty
        if not result.changed:
            result.persisted = True
            # A clean run still clears the marker of an earlier failed refresh
            if chat_session.meta_error_at is None or self.options.dry_run:
                return result
        elif self.options.dry_run:
            return result

        try:
            await self.writer.apply(chat_session, changes)
        except SessionPersistenceError as e:
            e.result = result
            raise

        # Reflect what the guarded updates actually stored
        result.title = chat_session.title
        result.title_source = chat_session.title_source
        result.risk_level = chat_session.risk_level
        result.persisted = True
        return result

    def _skipped(self, chat_session: ChatSession, message_count: int, reason: str) -> PipelineResult:
        return PipelineResult(
            session_id=chat_session.id,
            outcome=PipelineOutcome.SKIPPED,
            title=chat_session.title,
            title_source=chat_session.title_source,
            risk_level=chat_session.risk_level,
            summary=chat_session.summary,
            reason=chat_session.risk_reason,
            topic_tags=list(chat_session.topic_tags or []),
            message_count=message_count,
            skip_reason=reason,
            persisted=True,
        )

    @staticmethod
    def _skip_reason(chat_session: ChatSession) -> str:
        if chat_session.title_source in (TitleSource.AI.value, TitleSource.MANUAL.value):
            return "title_frozen"
        return "trigger_not_met"

    def _title_seed(self, chat_session: ChatSession, turns: list[TranscriptTurn], first_message: str | None) -> str | None:
        if chat_session.title_source == TitleSource.NONE.value and chat_session.title != UNTITLED:
            return chat_session.title
        for turn in turns:
            if turn.role == MessageRole.USER.value:
                return turn.content
        return first_message

    async def _generate_title(
        self,
        chat_session: ChatSession,
        turns: list[TranscriptTurn],
        first_message: str | None,
    ) -> _TitleOutcome:
        # Legacy titles that never went through the pipeline are echoed back
        current_title = UNTITLED
        if chat_session.title_source == TitleSource.NONE.value and chat_session.title:
            current_title = chat_session.title
        seed = self._title_seed(chat_session, turns, first_message)

        prompt = build_prompt(
            PromptKind.TITLE_RISK,
            turns,
            current_title=current_title,
            title_max_length=self.options.title_max_length,
        )
        try:
            raw = await self.gemini.generate_content(prompt)
        except AIServiceError as e:
            logger.warning(f"Title generation failed for session {chat_session.id}, using fallback: {e.message}")
            return _TitleOutcome(title=self.normalizer.fallback_title(seed), source=TitleSource.FALLBACK.value)

        normalized = self.normalizer.normalize(raw, seed=seed)
        if not normalized.parsed:
            return _TitleOutcome(title=normalized.title, source=TitleSource.FALLBACK.value)

        return _TitleOutcome(
            title=normalized.title,
            source=TitleSource.FALLBACK.value if normalized.title_from_fallback else TitleSource.AI.value,
            risk_level=normalized.risk_level,
            reason=normalized.reason or None,
        )

    async def _generate_summary(self, chat_session: ChatSession, turns: list[TranscriptTurn]):
        prompt = build_prompt(PromptKind.SUMMARY, turns)
        try:
            raw = await self.gemini.generate_content(prompt)
        except AIServiceError as e:
            logger.error(f"Summary generation failed for session {chat_session.id}: {e.message}")
            raise SummaryGenerationError(
                details={"session_id": str(chat_session.id), "cause": e.error_code}
            ) from e
        return self.normalizer.normalize(raw)

    def _resolve_risk(self, chat_session: ChatSession, next_risk: str | None) -> tuple[str, bool]:
        current = chat_session.risk_level or RiskLevel.NORMAL.value
        if next_risk is None:
            return current, False
        if (
            settings.risk_caution_sticky
            and current == RiskLevel.CAUTION.value
            and next_risk != RiskLevel.CAUTION.value
        ):
            logger.warning(
                f"Session {chat_session.id} stays at caution, model suggested {next_risk}"
            )
            return current, True
        return next_risk, False
