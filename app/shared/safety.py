"""Danger keyword pre-filter for student messages.

Runs before any model call. A match only records an alert for the linked
parent; the conversation itself continues.
"""

from collections.abc import Iterable

DANGER_KEYWORDS = (
    "kill myself",
    "suicide",
    "die",
    "hurt myself",
    "end my life",
    "cut myself",
    "blood",
    "overdose",
    "죽고싶다",
    "자살",
    "자해",
    "목숨",
    "죽어버릴",
    "뛰어내릴",
    "칼로",
    "피가",
    "죽을래",
    "사라지고 싶다",
    "손목",
)

SAFETY_ALERT_MESSAGE = "\n".join(
    [
        "[ForTen AI 안전 알림]",
        "자녀의 대화 중 심리적 불안이나 안전이 우려되는 표현이 감지되었습니다.",
        "자녀분과 따뜻한 대화를 나눠보시길 권장드립니다.",
        "(자녀의 프라이버시를 위해 대화 원문은 제공되지 않습니다)",
    ]
)


def find_danger_keywords(text: str | None, keywords: Iterable[str] = DANGER_KEYWORDS) -> list[str]:
    """Return the keywords contained in ``text``, case-insensitively."""
    if not text:
        return []
    lowered = text.lower()
    return [keyword for keyword in keywords if keyword in lowered]
