"""Named regex patterns for well-known policy clauses.

Each pattern turns a match into a canonical rule text plus a structured
payload, with its own confidence. A pattern's extractor may decline a match
by returning None (e.g. an amount too small to be a real sub-limit).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional

from policylens.domain import RuleCategory

Extracted = Optional[tuple[str, dict]]

MAX_MATCHES_PER_PATTERN = 5

_I = re.IGNORECASE


@dataclass(frozen=True)
class RulePattern:
    name: str
    category: RuleCategory
    pattern: re.Pattern
    confidence: float
    extract: Callable[[re.Match, str], Extracted]


def format_inr(amount: int) -> str:
    """Indian digit grouping: 100000 -> '1,00,000'."""
    s = str(amount)
    if len(s) <= 3:
        return s
    head, tail = s[:-3], s[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def _int(s: str) -> int:
    return int(s.replace(",", ""))


def _unit(raw: str) -> str:
    u = raw.lower()
    return u[:-1] if u.endswith("s") else u


def _plural(value: int, unit: str) -> str:
    return f"{value} {unit}{'s' if value > 1 else ''}"


# ---------------------------------------------------------------------------
# Waiting periods
# ---------------------------------------------------------------------------

def _explicit_waiting(m: re.Match, text: str) -> Extracted:
    value = int(m.group(1))
    unit = _unit(m.group(2))
    return f"{_plural(value, unit)} waiting period", {"value": value, "unit": unit, "type": "general"}


def _ped_waiting(m: re.Match, text: str) -> Extracted:
    value = int(m.group(1))
    unit = _unit(m.group(2))
    return (
        f"Pre-existing diseases: {_plural(value, unit)} waiting period",
        {"value": value, "unit": unit, "type": "pre_existing"},
    )


def _condition_waiting(m: re.Match, text: str) -> Extracted:
    condition = m.group(1).capitalize()
    value = int(m.group(2))
    unit = _unit(m.group(3))
    return (
        f"{condition}: {_plural(value, unit)} waiting period",
        {"value": value, "unit": unit, "type": "specific", "condition": condition.lower()},
    )


def _initial_waiting(m: re.Match, text: str) -> Extracted:
    value = int(m.group(1)) if m.group(1) else None
    unit = m.group(2) or "days"
    if value is None:
        window = text[max(0, m.start() - 50):m.start() + 100]
        ctx = re.search(r"(\d+)\s*(days?|months?)", window, _I)
        if ctx:
            value, unit = int(ctx.group(1)), ctx.group(2)
    if value is None:
        return None
    return f"Initial waiting period: {value} {unit}", {"value": value, "unit": _unit(unit), "type": "initial"}


# ---------------------------------------------------------------------------
# Financial limits
# ---------------------------------------------------------------------------

def _room_rent(m: re.Match, text: str) -> Extracted:
    amount = _int(m.group(1))
    return (
        f"Room Rent Limit: ₹{format_inr(amount)} per day",
        {"type": "room_rent", "amount": amount, "currency": "INR", "period": "per_day"},
    )


def _copay(m: re.Match, text: str) -> Extracted:
    pct = int(m.group(1))
    return f"Co-payment: {pct}%", {"type": "copay", "percentage": pct, "applicability": "general"}


def _age_copay(m: re.Match, text: str) -> Extracted:
    age, pct = int(m.group(1)), int(m.group(2))
    return f"Co-payment for age {age}+: {pct}%", {"type": "copay", "percentage": pct, "age_threshold": age}


def _deductible(m: re.Match, text: str) -> Extracted:
    amount = _int(m.group(1))
    return f"Deductible: ₹{format_inr(amount)}", {"type": "deductible", "amount": amount, "currency": "INR"}


def _sublimit_pct(m: re.Match, text: str) -> Extracted:
    pct = int(m.group(1))
    return f"Sub-limit: {pct}% of Sum Insured", {"type": "sublimit", "percentage": pct, "base": "sum_insured"}


def _sublimit_amount(m: re.Match, text: str) -> Extracted:
    amount = _int(m.group(1))
    if amount < 1000:
        return None
    return f"Sub-limit: ₹{format_inr(amount)}", {"type": "sublimit", "amount": amount, "currency": "INR"}


def _icu(m: re.Match, text: str) -> Extracted:
    if m.group(1):
        amount = _int(m.group(1))
        return (
            f"ICU Charges Limit: ₹{format_inr(amount)} per day",
            {"type": "icu_limit", "amount": amount, "currency": "INR"},
        )
    if m.group(2):
        mult = int(m.group(2))
        return f"ICU Charges Limit: {mult}x Room Rent", {"type": "icu_limit", "multiplier": mult, "base": "room_rent"}
    return None


# ---------------------------------------------------------------------------
# Exclusions / coverage / claim rejection
# ---------------------------------------------------------------------------

def _fixed(text: str, **structured) -> Callable[[re.Match, str], Extracted]:
    def _extract(m: re.Match, full: str) -> Extracted:
        return text, dict(structured)
    return _extract


def _dental(m: re.Match, text: str) -> Extracted:
    has_exception = re.search(r"unless[^.]*?accident", m.group(0), _I) is not None
    return (
        "Dental treatment excluded (except if due to accident)" if has_exception else "Dental treatment excluded",
        {"type": "conditional_exclusion", "items": ["dental"], "exception": "accident" if has_exception else None},
    )


def _explicit_not_covered(m: re.Match, text: str) -> Extracted:
    content = m.group(1).strip()
    if len(content) < 10 or re.match(r"^(?:the|any|all|under|this)", content, _I):
        return None
    return content, {"type": "explicit_exclusion", "raw_text": content}


def _pre_post_hosp(m: re.Match, text: str) -> Extracted:
    kind = m.group(1).lower()
    days = int(m.group(2))
    return f"{kind.capitalize()}-hospitalization: {days} days covered", {"type": f"{kind}_hospitalization", "days": days}


def _notification(m: re.Match, text: str) -> Extracted:
    return (
        f"Claim intimation required within {m.group(1)} {m.group(2)}",
        {"type": "timeline_requirement", "value": int(m.group(1)), "unit": m.group(2)},
    )


def _document_timeline(m: re.Match, text: str) -> Extracted:
    return (
        f"Documents must be submitted within {m.group(1)} {m.group(2)}",
        {"type": "document_timeline", "value": int(m.group(1)), "unit": m.group(2)},
    )


_W = RuleCategory.WAITING_PERIOD
_F = RuleCategory.FINANCIAL_LIMIT
_E = RuleCategory.EXCLUSION
_C = RuleCategory.COVERAGE
_R = RuleCategory.CLAIM_REJECTION

RULE_PATTERNS: tuple[RulePattern, ...] = (
    RulePattern("explicit_numeric_waiting", _W, re.compile(
        r"(\d+)\s*(months?|years?|days?)\s*(?:waiting|exclusion|cooling[- ]?off)\s*period", _I), 0.99, _explicit_waiting),
    RulePattern("pre_existing_disease_waiting", _W, re.compile(
        r"(?:pre[- ]?existing|ped)\s*(?:disease|condition|illness)?s?\s*[:\-–]?\s*(\d+)\s*(months?|years?)", _I), 0.99, _ped_waiting),
    RulePattern("specific_condition_waiting", _W, re.compile(
        r"(maternity|cancer|heart|knee|cataract|hernia|hysterectomy|joint replacement|bariatric|obesity|infertility|dialysis|transplant)"
        r"[^.]*?(\d+)\s*(months?|years?)\s*(?:waiting|from|after)", _I), 0.98, _condition_waiting),
    RulePattern("initial_waiting_period", _W, re.compile(
        r"(?:initial|first)\s*(?:waiting\s*period\s*(?:of)?|(\d+)\s*(days?|months?))", _I), 0.97, _initial_waiting),

    RulePattern("room_rent_limit", _F, re.compile(
        r"room\s*(?:rent|charges?|tariff)[^.]*?(?:₹|rs\.?|inr|rupees?)\s*([\d,]*\d)(?:\s*(?:per|/)\s*day)?", _I), 0.99, _room_rent),
    RulePattern("copay_percentage", _F, re.compile(r"co[- ]?pay(?:ment)?[^.]*?(\d+)\s*%", _I), 0.99, _copay),
    RulePattern("age_based_copay", _F, re.compile(
        r"(?:above|over|after|senior)\s*(\d+)\s*(?:years?|yrs?)?[^.]*?co[- ]?pay[^.]*?(\d+)\s*%", _I), 0.98, _age_copay),
    RulePattern("deductible_amount", _F, re.compile(
        r"deductible[^.]*?(?:₹|rs\.?|inr|rupees?)\s*([\d,]*\d)", _I), 0.99, _deductible),
    RulePattern("sublimit_percentage", _F, re.compile(
        r"(?:sub[- ]?limit|capped|maximum|limit)[^.]*?(\d+)\s*%\s*(?:of\s*)?(?:si|sum\s*insured|cover)", _I), 0.98, _sublimit_pct),
    RulePattern("sublimit_amount", _F, re.compile(
        r"(?:sub[- ]?limit|maximum|limit|up\s*to)[^.]*?(?:₹|rs\.?|inr)\s*([\d,]*\d)", _I), 0.97, _sublimit_amount),
    RulePattern("icu_charges_limit", _F, re.compile(
        r"(?:icu|iccu|intensive\s*care)[^.]*?(?:(?:₹|rs\.?|inr)\s*([\d,]*\d)|(\d+)\s*(?:x|times)\s*room)", _I), 0.98, _icu),

    RulePattern("war_terrorism_nuclear", _E, re.compile(
        r"(?:war|warfare|terrorism|terrorist|nuclear|radiation|hostilities|riot|strike|civil\s*commotion)"
        r"[^.]*?(?:excluded|not\s*covered|shall\s*not\s*be\s*payable)", _I), 0.99,
        _fixed("War, terrorism, nuclear events, riots, and civil commotion excluded",
               type="standard_exclusion", items=["war", "terrorism", "nuclear", "riots"])),
    RulePattern("cosmetic_procedures", _E, re.compile(
        r"cosmetic[^.]*?(?:surgery|procedure|treatment|enhancement)[^.]*?(?:excluded|not\s*covered|not\s*payable)", _I), 0.99,
        _fixed("Cosmetic and plastic surgery for beautification excluded",
               type="standard_exclusion", items=["cosmetic_surgery"])),
    RulePattern("self_inflicted_injury", _E, re.compile(
        r"self[- ]?inflicted[^.]*?(?:injury|injuries|harm|wound)", _I), 0.99,
        _fixed("Self-inflicted injuries excluded", type="standard_exclusion", items=["self_inflicted"])),
    RulePattern("alcohol_drugs", _E, re.compile(
        r"(?:alcohol|drug|substance|intoxication|narcotics?)[^.]*?(?:excluded|not\s*covered|not\s*payable)", _I), 0.98,
        _fixed("Injuries due to alcohol or drug abuse excluded", type="standard_exclusion", items=["alcohol", "drugs"])),
    RulePattern("adventure_sports", _E, re.compile(
        r"(?:adventure|hazardous|extreme|dangerous)\s*(?:sports?|activit(?:y|ies))[^.]*?(?:excluded|not\s*covered)", _I), 0.97,
        _fixed("Adventure sports and hazardous activities excluded",
               type="standard_exclusion", items=["adventure_sports", "hazardous_activities"])),
    RulePattern("dental_unless", _E, re.compile(
        r"dental[^.]*?(?:excluded|not\s*covered)(?:[^.]*?unless[^.]*?accident)?", _I), 0.96, _dental),
    RulePattern("infertility_treatment", _E, re.compile(
        r"(?:infertility|ivf|assisted\s*reproduction|fertility)[^.]*?(?:excluded|not\s*covered)", _I), 0.98,
        _fixed("Infertility treatment and IVF excluded", type="standard_exclusion", items=["infertility", "ivf"])),
    RulePattern("obesity_weight_loss", _E, re.compile(
        r"(?:obesity|weight\s*loss|bariatric|gastric\s*bypass|liposuction)[^.]*?(?:excluded|not\s*covered)", _I), 0.98,
        _fixed("Obesity/weight loss surgery and bariatric procedures excluded",
               type="standard_exclusion", items=["obesity", "bariatric", "weight_loss"])),
    RulePattern("explicit_not_covered_list", _E, re.compile(
        r"(?:not\s*covered|excluded|shall\s*not\s*be\s*payable)[:\s]+([^.]+)", _I), 0.90, _explicit_not_covered),

    RulePattern("hospitalization_covered", _C, re.compile(
        r"(?:in[- ]?patient\s*)?hospitali[sz]ation[^.]*?(?:covered|included|payable|shall\s*be\s*paid)", _I), 0.95,
        _fixed("In-patient hospitalization covered", type="core_coverage", items=["hospitalization"])),
    RulePattern("daycare_procedures", _C, re.compile(
        r"day\s*care\s*(?:procedure|treatment|surgery)[^.]*?(?:covered|included|payable)", _I), 0.97,
        _fixed("Day care procedures covered", type="core_coverage", items=["daycare"])),
    RulePattern("pre_post_hospitalization", _C, re.compile(
        r"(pre|post)[- ]?hospitali[sz]ation[^.]*?(\d+)\s*days?[^.]*?(?:covered|included|payable)", _I), 0.98, _pre_post_hosp),
    RulePattern("ambulance_covered", _C, re.compile(
        r"ambulance[^.]*?(?:covered|included|payable)", _I), 0.96,
        _fixed("Ambulance charges covered", type="additional_coverage", items=["ambulance"])),
    RulePattern("domiciliary_covered", _C, re.compile(
        r"(?:domiciliary|home)\s*(?:treatment|hospitali[sz]ation)[^.]*?(?:covered|included|payable)", _I), 0.96,
        _fixed("Domiciliary (home) treatment covered", type="additional_coverage", items=["domiciliary"])),
    RulePattern("organ_donor_covered", _C, re.compile(
        r"(?:organ\s*)?donor[^.]*?(?:expense|charge|cost)[^.]*?(?:covered|included|payable)", _I), 0.96,
        _fixed("Organ donor expenses covered", type="additional_coverage", items=["organ_donor"])),
    RulePattern("ayush_covered", _C, re.compile(
        r"(?:ayush|ayurveda|homeopathy|unani|siddha|naturopathy)[^.]*?(?:covered|included|payable)", _I), 0.95,
        _fixed("AYUSH treatments (Ayurveda, Yoga, Unani, Siddha, Homeopathy) covered",
               type="additional_coverage", items=["ayush"])),

    RulePattern("notification_timeline", _R, re.compile(
        r"(?:notify|notification|intimate|intimation)[^.]*?(?:within|in)\s*(\d+)\s*(hours?|days?)", _I), 0.97, _notification),
    RulePattern("document_submission_timeline", _R, re.compile(
        r"(?:document|bill|receipt|claim\s*form)[^.]*?(?:submit|submission)[^.]*?(?:within|in)\s*(\d+)\s*(days?)", _I), 0.97,
        _document_timeline),
    RulePattern("network_hospital_requirement", _R, re.compile(
        r"(?:network|empanelled|listed)\s*hospital[^.]*?(?:required|mandatory|must|only)", _I), 0.90,
        _fixed("Network hospital required for cashless claims", type="network_requirement")),
    RulePattern("fraud_misrepresentation", _R, re.compile(
        r"(?:fraud|misrepresent|false|fake|forged)[^.]*?(?:void|cancel|reject|decline|forfeit)", _I), 0.95,
        _fixed("Fraud or misrepresentation will void the claim", type="fraud_clause")),
    RulePattern("original_documents_required", _R, re.compile(
        r"original[^.]*?(?:bill|document|receipt|report)[^.]*?(?:required|mandatory|must|necessary)", _I), 0.92,
        _fixed("Original documents/bills required for claim", type="document_requirement", original_required=True)),
)
