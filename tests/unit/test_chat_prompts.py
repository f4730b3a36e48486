"""Unit tests for mentor reply length shaping."""

import random

import pytest

from app.domains.chat.prompts import (
    MORE_DETAIL_NOTE,
    PADDING_TIPS,
    LengthPlan,
    build_system_instruction,
    is_deep_request,
    plan_reply_length,
    shape_reply,
    trim_to_sentence,
)


class TestLengthPlan:
    @pytest.mark.parametrize(
        "question,deep",
        [
            ("광합성 원리를 자세히 알려줘", True),
            ("Why is the sky blue?", True),
            ("왜 공부해야 해?", True),
            ("오늘 기분이 별로야", False),
        ],
    )
    def test_is_deep_request(self, question, deep):
        assert is_deep_request(question) is deep

    def test_short_question_uses_minimum(self):
        plan = plan_reply_length("안녕", rng=random.Random(1))
        assert plan.target_len == 80

    def test_long_question_is_capped(self):
        plan = plan_reply_length("가" * 2000, rng=random.Random(1))
        assert plan.target_len == 600

    def test_target_within_twenty_percent(self):
        question = "가" * 200
        for seed in range(20):
            plan = plan_reply_length(question, rng=random.Random(seed))
            assert 160 <= plan.target_len <= 240


class TestShapeReply:
    def test_deep_reply_untouched(self):
        text = "가" * 1000
        assert shape_reply(text, LengthPlan(target_len=100, deep=True)) == text

    def test_long_reply_is_trimmed_at_sentence(self):
        text = ("이건 충분히 긴 첫 문장입니다. " * 20).strip()
        shaped = shape_reply(text, LengthPlan(target_len=100, deep=False))

        assert shaped.endswith(MORE_DETAIL_NOTE)
        body = shaped[: -len(MORE_DETAIL_NOTE)]
        assert body.endswith(".")
        assert len(body) <= 115

    def test_short_reply_is_padded(self):
        shaped = shape_reply("좋아요.", LengthPlan(target_len=120, deep=False))
        assert shaped == "좋아요." + PADDING_TIPS

    def test_reply_near_target_unchanged(self):
        text = "가" * 100
        assert shape_reply(text, LengthPlan(target_len=100, deep=False)) == text

    def test_trim_without_boundary(self):
        assert trim_to_sentence("가" * 300, 100) == "가" * 100 + MORE_DETAIL_NOTE


class TestSystemInstruction:
    def test_parent_instruction_block(self):
        instruction = build_system_instruction(LengthPlan(120, False), "존댓말로만 답해 주세요")

        assert "[Parent Instruction - Highest Priority]\n존댓말로만 답해 주세요" in instruction
        assert "약 120자" in instruction

    def test_without_parent_instruction(self):
        instruction = build_system_instruction(LengthPlan(120, True))
        assert "- 없음" in instruction
        assert "충분히 길고 구조적으로" in instruction
