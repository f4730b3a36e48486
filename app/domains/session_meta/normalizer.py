"""Turn raw LLM output into fully populated session metadata.

Model output is treated as untrusted text: the JSON object is pulled out of
whatever wrapping the model added, parsed into a pydantic model and every
field is clamped to its legal range. Nothing in here raises; malformed input
degrades to deterministic fallbacks.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.core.config import settings
from models.chat_session import MAX_TOPIC_TAGS, UNTITLED, RiskLevel

logger = logging.getLogger(__name__)

SUMMARY_UNAVAILABLE = "대화 요약을 생성하지 못했습니다."
SUMMARY_CONTINUATION = "학생의 현재 감정과 요청을 조금 더 구체적으로 지켜볼 필요가 있습니다."
REASON_MAX_LENGTH = 300

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
_FENCED_ANY = re.compile(r"```\s*([\s\S]*?)```")
_TITLE_QUOTES = re.compile(r"[\"'`]")
_WHITESPACE = re.compile(r"\s+")

_RISK_ALIASES = {
    "stable": RiskLevel.STABLE.value,
    "normal": RiskLevel.NORMAL.value,
    "caution": RiskLevel.CAUTION.value,
    "warn": RiskLevel.CAUTION.value,
    "high": RiskLevel.CAUTION.value,
}


def extract_json_object(raw: str | None) -> str:
    """Return the most likely JSON object text contained in ``raw``."""
    text = (raw or "").strip()
    if not text:
        return "{}"

    fenced = _FENCED_JSON.search(text)
    if fenced:
        return fenced.group(1).strip()

    fenced = _FENCED_ANY.search(text)
    if fenced:
        return fenced.group(1).strip()

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return "{}"


def normalize_risk_level(value: Any) -> str:
    """Map any model label onto stable / normal / caution."""
    if not isinstance(value, str):
        return RiskLevel.NORMAL.value
    return _RISK_ALIASES.get(value.strip().lower(), RiskLevel.NORMAL.value)


def normalize_topic_tags(value: Any) -> list[str]:
    """Non-blank string tags, at most ``MAX_TOPIC_TAGS``; anything else is dropped."""
    if not isinstance(value, list):
        return []
    tags = [tag.strip() for tag in value if isinstance(tag, str) and tag.strip()]
    return tags[:MAX_TOPIC_TAGS]


def sanitize_title(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    value = _TITLE_QUOTES.sub("", value)
    return _WHITESPACE.sub(" ", value).strip()


class LLMMetadataPayload(BaseModel):
    """Fields the prompts ask for. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    risk_level: str = Field(
        default=RiskLevel.NORMAL.value,
        validation_alias=AliasChoices("risk_level", "riskLevel", "stability_label"),
    )
    summary: str | None = None
    reason: str = ""
    topic_tags: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("topicTags", "topic_tags"),
    )

    @field_validator("title", mode="before")
    @classmethod
    def clean_title(cls, v):
        return sanitize_title(v)

    @field_validator("risk_level", mode="before")
    @classmethod
    def clean_risk_level(cls, v):
        return normalize_risk_level(v)

    @field_validator("summary", mode="before")
    @classmethod
    def clean_summary(cls, v):
        return v.strip() if isinstance(v, str) else None

    @field_validator("reason", mode="before")
    @classmethod
    def clean_reason(cls, v):
        return v.strip()[:REASON_MAX_LENGTH] if isinstance(v, str) else ""

    @field_validator("topic_tags", mode="before")
    @classmethod
    def clean_topic_tags(cls, v):
        return normalize_topic_tags(v)


@dataclass(frozen=True)
class NormalizedMetadata:
    title: str
    risk_level: str
    summary: str
    reason: str
    parsed: bool
    title_from_fallback: bool
    topic_tags: list[str] = field(default_factory=list)


class MetadataNormalizer:
    """Validate LLM output for the title/risk and summary prompts."""

    def __init__(
        self,
        title_max_length: int | None = None,
        summary_min_length: int | None = None,
        summary_max_length: int | None = None,
    ):
        self.title_max_length = title_max_length or settings.title_max_length_meta
        self.summary_min_length = summary_min_length or settings.summary_min_length
        self.summary_max_length = summary_max_length or settings.summary_max_length

    def parse(self, raw: str | None) -> LLMMetadataPayload | None:
        """Parse model text; ``None`` when it is not a JSON object."""
        candidate = extract_json_object(raw)
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            logger.warning("LLM metadata output is not valid JSON")
            return None
        if not isinstance(data, dict):
            logger.warning(f"LLM metadata output is a {type(data).__name__}, expected an object")
            return None
        try:
            return LLMMetadataPayload.model_validate(data)
        except ValidationError as e:
            logger.warning(f"LLM metadata output failed validation: {e.error_count()} errors")
            return None

    def fallback_title(self, seed: str | None) -> str:
        """Deterministic title derived from the seed text."""
        title = sanitize_title(seed)[: self.title_max_length].strip()
        if not title:
            return UNTITLED
        return title

    def normalize_summary(self, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            return SUMMARY_UNAVAILABLE

        summary = value.strip()
        while len(summary) < self.summary_min_length:
            summary = f"{summary} {SUMMARY_CONTINUATION}"
        return summary[: self.summary_max_length]

    def normalize(self, raw: str | None, seed: str | None = None) -> NormalizedMetadata:
        """Always returns every field populated and within bounds."""
        payload = self.parse(raw)
        if payload is None:
            return NormalizedMetadata(
                title=self.fallback_title(seed),
                risk_level=RiskLevel.NORMAL.value,
                summary=SUMMARY_UNAVAILABLE,
                reason="",
                parsed=False,
                title_from_fallback=True,
            )

        title = payload.title[: self.title_max_length].strip()
        return NormalizedMetadata(
            title=title or self.fallback_title(seed),
            risk_level=payload.risk_level,
            summary=self.normalize_summary(payload.summary),
            reason=payload.reason,
            parsed=True,
            title_from_fallback=not title,
            topic_tags=payload.topic_tags,
        )
