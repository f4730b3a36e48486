"""Decide which metadata work a session needs right now."""

from dataclasses import dataclass, field
from datetime import datetime

from app.core.config import settings
from models.base import utcnow
from models.chat_session import FROZEN_TITLE_SOURCES

from .normalizer import SUMMARY_UNAVAILABLE


@dataclass(frozen=True)
class TriggerConfig:
    every_n_messages: int
    idle_seconds: int

    @classmethod
    def fast(cls) -> "TriggerConfig":
        return cls(settings.summary_every_n_messages, settings.summary_idle_seconds_fast)

    @classmethod
    def backfill(cls) -> "TriggerConfig":
        return cls(settings.summary_every_n_messages, settings.summary_idle_seconds_backfill)


@dataclass(frozen=True)
class SessionSnapshot:
    """The subset of session state the trigger rules look at."""

    summary: str | None
    title_source: str
    has_user_turn: bool
    message_count: int
    last_activity_at: datetime | None


@dataclass(frozen=True)
class TriggerDecision:
    summarize: bool
    title: bool
    reasons: tuple[str, ...] = field(default_factory=tuple)

    @property
    def should_run(self) -> bool:
        return self.summarize or self.title

    def without_summary(self) -> "TriggerDecision":
        return TriggerDecision(
            summarize=False,
            title=self.title,
            reasons=tuple(r for r in self.reasons if r == "title_missing"),
        )


def has_summary(summary: str | None) -> bool:
    return bool(summary and summary.strip()) and summary.strip() != SUMMARY_UNAVAILABLE


class TriggerEvaluator:
    """Pure rules: given a snapshot and a clock, what should run.

    Summary runs when there is none yet, when the message count hits a
    multiple of ``every_n_messages`` or when the session has been idle for
    ``idle_seconds``. Title runs until the title came from the model or a
    user edit, provided a student turn exists.
    """

    def __init__(self, config: TriggerConfig | None = None):
        self.config = config or TriggerConfig.fast()

    def idle_seconds(self, last_activity_at: datetime | None, now: datetime) -> float:
        if last_activity_at is None:
            return 0.0
        return max(0.0, (now - last_activity_at).total_seconds())

    def summary_reasons(self, snapshot: SessionSnapshot, now: datetime) -> list[str]:
        reasons = []
        if not has_summary(snapshot.summary):
            reasons.append("summary_missing")

        every_n = self.config.every_n_messages
        if snapshot.message_count >= every_n and snapshot.message_count % every_n == 0:
            reasons.append("message_interval")

        if self.idle_seconds(snapshot.last_activity_at, now) >= self.config.idle_seconds:
            reasons.append("idle")
        return reasons

    def should_title(self, snapshot: SessionSnapshot) -> bool:
        return snapshot.title_source not in FROZEN_TITLE_SOURCES and snapshot.has_user_turn

    def evaluate(self, snapshot: SessionSnapshot, now: datetime | None = None) -> TriggerDecision:
        now = now or utcnow()
        reasons = self.summary_reasons(snapshot, now)
        title = self.should_title(snapshot)
        if title:
            reasons.append("title_missing")
        return TriggerDecision(
            summarize=any(r != "title_missing" for r in reasons),
            title=title,
            reasons=tuple(reasons),
        )
