"""Tests for policylens.services.segmenter."""
import pytest

from policylens.domain import ChunkHint
from policylens.services.segmenter import (
    clean_rule_text,
    create_chunks,
    is_structural_line,
    repair_text_glue,
    split_into_sections,
    sub_chunk,
)


# ---------------------------------------------------------------------------
# split_into_sections
# ---------------------------------------------------------------------------

def test_split_into_sections_merges_short_sections_forward():
    text = (
        "Intro\n"
        "Definitions\n" + "a" * 600 + "\n"
        "Exclusions\n" + "b" * 100 + "\n"
        "Claims\n" + "c" * 600
    )
    sections = split_into_sections(text, min_section_length=500)
    assert len(sections) == 2
    assert sections[0].startswith("Intro\nDefinitions")
    assert "Exclusions" in sections[1]
    assert "Claims" in sections[1]


def test_split_into_sections_appends_short_tail_to_previous():
    text = "Definitions\n" + "a" * 600 + "\nClaims\nshort"
    sections = split_into_sections(text, min_section_length=500)
    assert len(sections) == 1
    assert sections[0].endswith("Claims\nshort")


def test_split_into_sections_empty_text():
    assert split_into_sections("") == []
    assert split_into_sections("   \n ") == []


# ---------------------------------------------------------------------------
# sub_chunk
# ---------------------------------------------------------------------------

def test_sub_chunk_windows_overlap():
    text = "".join(chr(ord("a") + (i % 26)) for i in range(3000))
    windows = sub_chunk(text, size=1400, overlap=100)
    assert [len(w) for w in windows] == [1400, 1400, 400]
    assert windows[0][-100:] == windows[1][:100]
    assert windows[1][-100:] == windows[2][:100]


def test_sub_chunk_rejects_overlap_not_smaller_than_size():
    with pytest.raises(ValueError):
        sub_chunk("abc" * 100, size=100, overlap=100)


# ---------------------------------------------------------------------------
# Repair and line filtering
# ---------------------------------------------------------------------------

def test_repair_text_glue():
    assert repair_text_glue("coverageExclusions apply") == "coverage Exclusions apply"
    assert repair_text_glue("") == ""


def test_is_structural_line():
    assert is_structural_line("- bullet item")
    assert is_structural_line("3. numbered")
    assert is_structural_line("(a) lettered")
    assert is_structural_line("| table | row |")
    assert is_structural_line("Exclusions:")
    assert not is_structural_line("plain words")


def test_clean_rule_text_drops_layout_garbage():
    text = "\n".join([
        "12",
        "Page",
        "- bullet item",
        "Short line",
        "This is a sentence.",
        "x" * 61,
    ])
    assert clean_rule_text(text).splitlines() == ["- bullet item", "This is a sentence.", "x" * 61]


# ---------------------------------------------------------------------------
# create_chunks
# ---------------------------------------------------------------------------

def _policy_text():
    rules = " ".join(
        f"Clause {i}: expenses for procedure {i} are covered up to the sum insured." for i in range(60)
    )
    return "Coverage\n" + rules + "\nExclusions\n" + rules.replace("covered", "excluded")


def test_create_chunks_is_deterministic_with_sequential_ids():
    text = _policy_text()
    first = create_chunks(text)
    second = create_chunks(text)
    assert first == second
    assert len(first) > 1
    assert [c.id for c in first] == list(range(1, len(first) + 1))


def test_create_chunks_drops_short_documents():
    text = "This policy covers hospitalization expenses. " * 5
    assert len(text) < 300
    assert create_chunks(text) == []


def test_create_chunks_never_emits_short_windows():
    for chunk in create_chunks(_policy_text()):
        assert len(chunk.raw_text) >= 300
        assert len(chunk.cleaned_text) >= 200


def test_definition_chunks_skip_line_filtering():
    lines = [f"Word{i} means thing number {i} in the wording" for i in range(12)]
    chunks = create_chunks("\n".join(lines))
    assert len(chunks) == 1
    assert chunks[0].hint == ChunkHint.DEFINITIONS
    assert "Word3 means thing number 3" in chunks[0].cleaned_text


def test_non_definition_chunk_with_only_garbage_lines_is_dropped():
    lines = [f"Word{i} is thing number {i} in the wording" for i in range(12)]
    assert create_chunks("\n".join(lines)) == []
