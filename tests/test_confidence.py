"""Tests for policylens.services.confidence."""
import pytest

from policylens.domain import AcceptedItem, ChunkHint, DefinitionItem, ItemSource, RuleCategory, RuleItem
from policylens.services.confidence import (
    calculate_confidence,
    confidence_level,
    confidence_stats,
    score_batch,
    score_item,
)


# ---------------------------------------------------------------------------
# calculate_confidence
# ---------------------------------------------------------------------------

def test_formal_exclusion_in_rules_chunk():
    score = calculate_confidence(
        "War is excluded from coverage due to hostilities.", hint=ChunkHint.RULES,
    )
    assert score >= 0.85
    assert score == pytest.approx(0.87)


def test_vague_question_is_clamped_to_floor():
    assert calculate_confidence("Claims may possibly be rejected?") == pytest.approx(0.50)


def test_score_is_clamped_to_ai_ceiling():
    text = "- Room rent is limited to Rs. 5000 per day."
    assert calculate_confidence(text, hint=ChunkHint.RULES) == pytest.approx(0.95)


def test_uncertain_category_costs_quarter():
    text = "Ambulance charges are covered up to Rs. 2000."
    assert calculate_confidence(text) == pytest.approx(0.90)
    assert calculate_confidence(text, uncertain=True) == pytest.approx(0.65)


def test_rule_engine_items_keep_own_confidence():
    assert calculate_confidence("anything", source=ItemSource.RULE_ENGINE, own_confidence=0.95) == 0.95
    assert calculate_confidence("anything", source=ItemSource.RULE_ENGINE) == 0.99


def test_invalid_text_scores_minimum():
    assert calculate_confidence("") == 0.50


# ---------------------------------------------------------------------------
# score_item
# ---------------------------------------------------------------------------

def test_score_item_flags_low_confidence_for_review():
    item = RuleItem(category=RuleCategory.EXCLUSION, text="Claims may possibly be rejected?")
    accepted = score_item(item, chunk_id=4)
    assert accepted.confidence == pytest.approx(0.50)
    assert accepted.needs_review is True
    assert accepted.chunk_id == 4


def test_score_item_high_confidence_not_flagged():
    item = RuleItem(category=RuleCategory.EXCLUSION, text="War is excluded from coverage due to hostilities.")
    accepted = score_item(item, hint=ChunkHint.RULES)
    assert accepted.needs_review is False


def test_score_item_scores_definition_text():
    item = DefinitionItem(term="Hospital", definition="Hospital shall mean an institution with 10 beds.")
    accepted = score_item(item)
    # base + sentence + formal ("shall")
    assert accepted.confidence == pytest.approx(0.82)


def test_score_batch_shares_hint_and_chunk():
    items = [
        RuleItem(category=RuleCategory.EXCLUSION, text="War is excluded from coverage due to hostilities."),
        DefinitionItem(term="ICU", definition="Intensive care unit of a hospital."),
    ]
    scored = score_batch(items, hint=ChunkHint.RULES, chunk_id=9)
    assert [a.chunk_id for a in scored] == [9, 9]
    assert scored[0].confidence == pytest.approx(0.87)


def test_score_item_respects_custom_threshold():
    item = RuleItem(category=RuleCategory.COVERAGE, text="Ambulance charges are covered up to Rs. 2000.")
    assert score_item(item, review_threshold=0.95).needs_review is True


# ---------------------------------------------------------------------------
# Bands and stats
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("value,label", [
    (0.99, "Very High"),
    (0.90, "High"),
    (0.75, "Medium"),
    (0.55, "Low"),
    (0.20, "Very Low"),
])
def test_confidence_level(value, label):
    assert confidence_level(value) == label


def test_confidence_stats():
    def _accepted(conf):
        return AcceptedItem(RuleItem(category=RuleCategory.COVERAGE, text="x" * 20), conf, conf < 0.85)

    stats = confidence_stats([_accepted(c) for c in (0.99, 0.90, 0.75, 0.52)])
    assert stats["total"] == 4
    assert stats["very_high"] == 1
    assert stats["high"] == 1
    assert stats["medium"] == 1
    assert stats["low"] == 1
    assert stats["needs_review"] == 2
    assert stats["average"] == pytest.approx(0.79)


def test_confidence_stats_empty():
    assert confidence_stats([])["total"] == 0
