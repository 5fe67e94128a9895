"""Section-aware segmentation of raw policy text into overlapping chunks.

Why we chunk (and don't send the whole document):
- Whole-document text is far beyond a single extraction call and mixes many topics.
- Window-sized chunks keep extraction focused and within token limits.

How we chunk:
- Section split: lines that start with a known section header (definitions, coverage,
  exclusions, waiting period, limits, claims, conditions) open a new section. Sections
  shorter than ``min_section_length`` are carried into the next section (or the previous
  one at the end of the document) instead of standing alone.
- Windowing: each section is re-split into fixed windows of ``window_size`` characters
  with ``window_overlap`` characters of overlap, so a definition or rule cut by a window
  boundary still appears whole in one of the two neighbours.
- Repair: windows shorter than ``min_chunk_length`` after trimming are dropped. Each kept
  window gets glue repair ("wordWord" -> "word Word") and, unless hinted as definitions,
  line-level garbage filtering.

Segmentation is deterministic: the same text always yields the same chunk sequence.
"""
from __future__ import annotations

import logging
import re
from typing import List

from policylens.domain import Chunk, ChunkHint
from policylens.services.classifier import classify_chunk_hint

logger = logging.getLogger(__name__)

SECTION_HEADERS = (
    "definitions?",
    "cover(?:age)?",
    "benefits",
    "exclusions?",
    "waiting\\s+periods?",
    "pre-existing",
    "limits",
    "claims?",
    "conditions",
    "terms\\s+and\\s+conditions",
)

SECTION_HEADER_RE = re.compile(
    r"^[ \t]*(?:" + "|".join(SECTION_HEADERS) + r")\b[^\n]*$",
    re.IGNORECASE | re.MULTILINE,
)

_GLUE_RE = re.compile(r"([a-z])([A-Z])")
_BULLET_RE = re.compile(r"^\s*[•\-\*]")
_NUMBERED_RE = re.compile(r"^\s*(\d+\.|[a-z]\)|\([a-z]\)|[ivx]+\.)", re.IGNORECASE)
_DIGITS_PUNCT_RE = re.compile(r"^[\d\W]+$")
_TERMINAL_PUNCT_RE = re.compile(r"[.;!?]$")


def split_into_sections(text: str, min_section_length: int = 500) -> List[str]:
    """Split text at section-header lines, merging short sections into neighbours."""
    if not text or not text.strip():
        return []
    starts = [0] + [m.start() for m in SECTION_HEADER_RE.finditer(text) if m.start() > 0]
    ends = starts[1:] + [len(text)]

    sections: List[str] = []
    carry = ""
    for start, end in zip(starts, ends):
        part = text[start:end].strip()
        if not part:
            continue
        merged = f"{carry}\n{part}" if carry else part
        if len(merged) < min_section_length:
            carry = merged
            continue
        sections.append(merged)
        carry = ""
    if carry:
        if sections:
            sections[-1] = f"{sections[-1]}\n{carry}"
        else:
            sections.append(carry)
    return sections


def sub_chunk(text: str, size: int = 1400, overlap: int = 100) -> List[str]:
    """Fixed-size windows with ``overlap`` characters shared between neighbours."""
    if not text:
        return []
    step = size - overlap
    if step <= 0:
        raise ValueError("window overlap must be smaller than window size")
    return [text[i:i + size] for i in range(0, len(text), step)]


def repair_text_glue(text: str) -> str:
    """Insert a space where a lowercase letter runs straight into an uppercase one."""
    if not text:
        return ""
    return _GLUE_RE.sub(r"\1 \2", text)


def is_structural_line(line: str) -> bool:
    """Bulleted, numbered, or table-like lines."""
    t = line.strip()
    if _BULLET_RE.match(line) or _NUMBERED_RE.match(line):
        return True
    return t.startswith("|") or t.endswith(":")


def clean_rule_text(text: str) -> str:
    """Drop layout garbage lines; keep structural, long, or sentence-final lines."""
    kept = []
    for line in text.splitlines():
        t = line.strip()
        if len(t) < 3 or (len(t) < 5 and _DIGITS_PUNCT_RE.match(t)):
            continue
        if is_structural_line(line) or len(t) > 60 or _TERMINAL_PUNCT_RE.search(t):
            kept.append(t)
    return "\n".join(kept)


def create_chunks(
    text: str,
    *,
    window_size: int = 1400,
    window_overlap: int = 100,
    min_section_length: int = 500,
    min_chunk_length: int = 300,
    min_cleaned_length: int = 200,
) -> List[Chunk]:
    """Segment raw document text into an ordered list of :class:`Chunk`.

    Chunk ids are assigned sequentially from 1 in document order.
    """
    chunks: List[Chunk] = []
    dropped = 0
    for section in split_into_sections(text, min_section_length):
        for piece in sub_chunk(section, window_size, window_overlap):
            raw = piece.strip()
            if len(raw) < min_chunk_length:
                dropped += 1
                continue
            glued = repair_text_glue(raw)
            hint = classify_chunk_hint(glued)
            cleaned = glued if hint == ChunkHint.DEFINITIONS else clean_rule_text(glued)
            if len(cleaned) < min_cleaned_length:
                dropped += 1
                continue
            chunks.append(Chunk(id=len(chunks) + 1, hint=hint, raw_text=raw, cleaned_text=cleaned))

    logger.info("Segmenter: %s chunks kept, %s windows dropped", len(chunks), dropped)
    return chunks
