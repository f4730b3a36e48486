"""Prompt builders for session metadata.

Prompts are deterministic: the same transcript and title always produce the
same text.
"""

from collections.abc import Sequence
from enum import Enum

from app.core.config import settings
from models.chat_session import UNTITLED

from .loader import TranscriptTurn

SPEAKER_LABELS = {"user": "학생", "model": "멘토"}

RISK_RUBRIC = (
    "[risk_level 기준]",
    "- stable: 감정이 안정적이고 위험 신호가 거의 없음",
    "- normal: 걱정/불안/스트레스 언급은 있으나 즉각 위험 신호는 없음",
    "- caution: 자해/자살/폭력/학대/극심한 절망 등 안전 위험 가능성 존재",
)


class PromptKind(str, Enum):
    TITLE_RISK = "title_risk"
    SUMMARY = "summary"


def render_transcript(turns: Sequence[TranscriptTurn]) -> str:
    return "\n".join(
        f"{i}. {SPEAKER_LABELS.get(turn.role, turn.role)}: {turn.content}"
        for i, turn in enumerate(turns, start=1)
    )


def build_title_risk_prompt(
    turns: Sequence[TranscriptTurn],
    current_title: str | None = None,
    title_max_length: int | None = None,
) -> str:
    """Ask for ``{"title", "risk_level"}``.

    When ``current_title`` is a real title the model is told to echo it back.
    """
    title = current_title or UNTITLED
    max_length = title_max_length or settings.title_max_length_meta
    lines = [
        "청소년 상담 대화의 메타데이터를 JSON으로 생성하세요.",
        "반드시 아래 JSON 스키마로만 답하세요.",
        '{"title":"...","risk_level":"stable|normal|caution"}',
        "",
        *RISK_RUBRIC,
        "",
        "[title 규칙]",
        f"- 8~{max_length}자 한국어",
        "- 구체적인 대화방 제목 형태",
        "- 너무 일반적인 표현(예: 대화, 고민상담) 금지",
        f'- 현재 title이 "{UNTITLED}"가 아니면 title은 기존 값을 그대로 반환',
        "",
        f"현재 title: {title}",
        "[최근 대화]",
        render_transcript(turns),
    ]
    return "\n".join(lines)


def build_summary_prompt(turns: Sequence[TranscriptTurn]) -> str:
    """Ask for ``{"summary", "riskLevel", "reason", "topicTags"}``."""
    lines = [
        "너는 청소년 상담 대화 요약 도우미다.",
        "아래 대화를 보호자/상담자가 빠르게 이해할 수 있도록 한국어로 요약해라.",
        "",
        "[요약 규칙]",
        "- 2~3문장",
        f"- 공백 포함 {settings.summary_min_length}~{settings.summary_max_length}자",
        "- 대화 주제, 감정 상태, 요청 사항, 멘토의 개입 내용을 포함",
        "- 이름, 학교, 연락처 등 민감한 개인정보는 제거",
        "",
        *RISK_RUBRIC,
        "- reason: risk 판단 근거 한 문장",
        "- topicTags: 대화 주제를 나타내는 한국어 태그 1~5개 배열",
        "",
        "반드시 아래 JSON으로만 답하세요.",
        '{"summary":"...","riskLevel":"stable|normal|caution","reason":"...","topicTags":["..."]}',
        "",
        "[대화]",
        render_transcript(turns),
    ]
    return "\n".join(lines)


def build_prompt(
    kind: PromptKind,
    turns: Sequence[TranscriptTurn],
    current_title: str | None = None,
    title_max_length: int | None = None,
) -> str:
    if kind == PromptKind.TITLE_RISK:
        return build_title_risk_prompt(turns, current_title, title_max_length)
    return build_summary_prompt(turns)
