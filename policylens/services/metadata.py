"""Document-level metadata from the raw policy text (title, insurer, UIN, type, year)."""
import re
from typing import Any, Dict, Optional

_UIN_RE = re.compile(r"UIN[:\s]*([A-Z0-9]+)", re.IGNORECASE)
_YEAR_RE = re.compile(r"(20\d{2})")
_POLICY_LINE_RE = re.compile(r"^(.*Policy.*)$", re.IGNORECASE | re.MULTILINE)
_INSURER_RES = (
    re.compile(r"([A-Za-z][A-Za-z0-9&().,\-\t ]{2,}Health Insurance Company Limited)", re.IGNORECASE),
    re.compile(r"([A-Za-z][A-Za-z0-9&().,\-\t ]{2,}Insurance Company Limited)", re.IGNORECASE),
)
_INSURER_PREFIX_RES = (
    re.compile(r"^insurer\s+means?\s+", re.IGNORECASE),
    re.compile(r"^insurer\s+shall\s+mean\s+", re.IGNORECASE),
)

INSURER_SEARCH_WINDOW = 3000


def first_non_empty_line(text: str) -> Optional[str]:
    for line in (text or "").splitlines():
        if line.strip():
            return line.strip()
    return None


def looks_like_title_line(line: Optional[str]) -> bool:
    if not line or len(line) < 15:
        return False
    lower = line.lower()
    if lower.startswith("exclusions") or lower.startswith("terms of"):
        return False
    return (
        "|" in line
        or re.search(r"uin[:\s]", line, re.IGNORECASE) is not None
        or re.search(r"terms\s*&\s*conditions", line, re.IGNORECASE) is not None
    )


def clean_insurer_name(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    cleaned = re.sub(r"\s+", " ", name).strip()
    for prefix in _INSURER_PREFIX_RES:
        cleaned = prefix.sub("", cleaned)
    return cleaned.strip() or None


def extract_insurer(text: str) -> Optional[str]:
    top = (text or "")[:INSURER_SEARCH_WINDOW]
    for pattern in _INSURER_RES:
        m = pattern.search(top)
        if m:
            return clean_insurer_name(m.group(1))
    return None


def extract_policy_metadata(text: str) -> Dict[str, Any]:
    text = text or ""
    first = first_non_empty_line(text)
    if looks_like_title_line(first):
        policy_name = first
    else:
        m = _POLICY_LINE_RE.search(text)
        policy_name = m.group(1).strip() if m else None

    uin = _UIN_RE.search(text)
    year = _YEAR_RE.search(text)
    return {
        "policy_name": policy_name,
        "insurer": extract_insurer(text),
        "uin": uin.group(1) if uin else None,
        "document_type": "Terms & Conditions" if "Terms & Conditions" in text else "Prospectus",
        "policy_year": year.group(1) if year else None,
    }
