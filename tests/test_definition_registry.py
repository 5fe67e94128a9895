"""Tests for policylens.services.definition_registry."""
from policylens.domain import DefinitionSource
from policylens.services.definition_registry import (
    build_alias_index,
    canonicalize_definitions,
    get_alias_index,
    load_registry,
    lookup,
    normalize_term_for_matching,
    slugify_key,
)


def test_normalize_term_for_matching():
    assert normalize_term_for_matching("ICU (Intensive Care Unit) Charges") == "icu intensive care unit charges"
    assert normalize_term_for_matching("  Room   & Boarding ") == "room boarding"


def test_slugify_key():
    assert slugify_key("Room Rent") == "room_rent"
    assert slugify_key("Myocardial Infarction (First Heart Attack)") == "myocardial_infarction_first_heart_attack"


def test_registry_loads_curated_table():
    entries = load_registry()
    assert len(entries) == 15
    assert all(e["key"] and e["canonical_term"] for e in entries)
    assert get_alias_index() is get_alias_index()


def test_lookup_matches_aliases_loosely():
    assert lookup("Room & Boarding")["key"] == "room_rent"
    assert lookup("In-patient Care")["key"] == "in_patient_care"
    assert lookup("HOSPITALISATION")["key"] == "hospitalization"
    assert lookup("Something Else") is None


def test_canonicalize_groups_aliases_and_keeps_longest_definition():
    definitions = {
        "Room Rent": "Room rent means the charges for accommodation.",
        "Room and Boarding": "Room and boarding means the charges for a bed in hospital including nursing.",
        "Weird Term": "Weird term means something odd.",
        "X": "tiny",
    }
    by_key, unmapped = canonicalize_definitions(definitions)

    room = by_key["room_rent"]
    assert room.source == DefinitionSource.REGISTRY
    assert room.canonical_term == "Room Rent"
    assert room.raw_terms == ["Room Rent", "Room and Boarding"]
    assert room.definition == definitions["Room and Boarding"]

    weird = by_key["weird_term"]
    assert weird.source == DefinitionSource.AUTO_SLUG
    assert unmapped == [{"term": "Weird Term", "key": "weird_term", "definition": "Weird term means something odd."}]

    assert "x" not in by_key
    assert set(by_key) == {"room_rent", "weird_term"}


def test_canonicalize_with_custom_alias_index():
    index = build_alias_index([{"key": "opd", "canonical_term": "Out-patient Treatment", "aliases": ["OPD", "outpatient"]}])
    by_key, unmapped = canonicalize_definitions({"OPD": "Treatment without admission to hospital."}, alias_index=index)
    assert by_key["opd"].canonical_term == "Out-patient Treatment"
    assert by_key["opd"].to_dict()["source"] == "canonical_registry"
    assert unmapped == []


def test_canonicalize_merges_auto_slug_duplicates():
    by_key, unmapped = canonicalize_definitions(
        {"Grace Cover": "Short text here.", "grace cover": "A longer definition of grace cover."},
        alias_index={},
    )
    assert by_key["grace_cover"].raw_terms == ["Grace Cover", "grace cover"]
    assert by_key["grace_cover"].definition == "A longer definition of grace cover."
    assert len(unmapped) == 1
