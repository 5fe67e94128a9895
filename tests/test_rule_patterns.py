"""Tests for the named clause patterns (policylens.services.rule_patterns) via apply_patterns."""
import pytest

from policylens.domain import RuleCategory
from policylens.services.rule_engine import RuleEngineResult, apply_patterns
from policylens.services.rule_patterns import RULE_PATTERNS, format_inr


def _apply(text):
    result = RuleEngineResult()
    apply_patterns(text, result, set())
    return result


def _texts(result, category):
    return [item.text for item in result.items[category]]


@pytest.mark.parametrize("amount,expected", [
    (999, "999"),
    (5000, "5,000"),
    (100000, "1,00,000"),
    (12345678, "1,23,45,678"),
])
def test_format_inr(amount, expected):
    assert format_inr(amount) == expected


def test_pattern_names_are_unique():
    names = [p.name for p in RULE_PATTERNS]
    assert len(names) == len(set(names))


def test_explicit_numeric_waiting_period():
    result = _apply("The policy has a 24 months waiting period for pre-existing diseases.")
    items = result.items[RuleCategory.WAITING_PERIOD]
    assert [i.text for i in items] == ["24 months waiting period"]
    assert items[0].confidence == 0.99
    assert items[0].rule_name == "explicit_numeric_waiting"
    assert items[0].structured == {"value": 24, "unit": "month", "type": "general"}


def test_room_rent_limit_uses_indian_grouping():
    result = _apply("Room rent limit: ₹5,000 per day for all insured members here.")
    texts = _texts(result, RuleCategory.FINANCIAL_LIMIT)
    assert "Room Rent Limit: ₹5,000 per day" in texts
    room = next(i for i in result.items[RuleCategory.FINANCIAL_LIMIT] if i.rule_name == "room_rent_limit")
    assert room.structured["amount"] == 5000


def test_small_sublimit_amount_is_declined():
    result = _apply("Maximum payable is Rs. 500 for spectacles under this section of policy.")
    assert _texts(result, RuleCategory.FINANCIAL_LIMIT) == []


def test_explicit_not_covered_skips_generic_lead_in():
    result = _apply("The following are not covered: the items listed in annexure two of policy.")
    assert _texts(result, RuleCategory.EXCLUSION) == []


def test_at_most_five_matches_per_pattern():
    text = " ".join(f"Benefit {i} has {i + 10} months waiting period." for i in range(7))
    result = _apply(text)
    assert len(result.items[RuleCategory.WAITING_PERIOD]) == 5


def test_dental_exclusion_with_accident_exception():
    result = _apply("Dental treatment is excluded unless necessitated by an accident.")
    assert "Dental treatment excluded (except if due to accident)" in _texts(result, RuleCategory.EXCLUSION)


def test_short_text_is_not_pattern_matched():
    assert _apply("24 months waiting period").rules_matched == 0


def test_shared_seen_set_blocks_repeats():
    result = RuleEngineResult()
    seen = {"24monthswaitingperiod"}
    apply_patterns("The policy has a 24 months waiting period for pre-existing diseases.", result, seen)
    assert result.rules_matched == 0
