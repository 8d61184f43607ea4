"""Tests for raw value coercion and sanitization."""

from __future__ import annotations

import math

import pytest

from peglin_entities.extraction.raw_values import (
    AssetRef,
    coerce_number,
    first_text,
    get_path,
    round_half_away,
    sanitize_raw_data,
    string_list,
    to_bool,
    to_float,
    to_int,
    to_str,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [(7, 7), (7.4, 7), (7.5, 8), (-2.5, -3), ("12", 12), (" 3.6 ", 4), ("abc", None), (None, None)],
)
def test_to_int(value: object, expected: int | None) -> None:
    assert to_int(value) == expected


def test_to_int_rejects_bool_and_non_finite() -> None:
    assert to_int(True) is None
    assert to_int(math.inf) is None
    assert to_int("nan") is None


def test_to_float_accepts_any_numeric_tag() -> None:
    assert to_float(3) == pytest.approx(3.0)
    assert to_float(2.25) == pytest.approx(2.25)
    assert to_float("1.5") == pytest.approx(1.5)
    assert to_float(False) is None
    assert to_float([1]) is None


def test_to_bool_and_to_str() -> None:
    assert to_bool("Yes") is True
    assert to_bool("off") is False
    assert to_bool(0) is False
    assert to_bool("maybe") is None

    assert to_str(5) == "5"
    assert to_str({"a": 1}) is None
    assert to_str(AssetRef(path_id=9, name="icon")) == "icon#0:9"


def test_round_half_away_from_zero() -> None:
    assert round_half_away(0.5) == 1
    assert round_half_away(1.5) == 2
    assert round_half_away(-0.5) == -1


def test_coerce_number_uses_field_semantics() -> None:
    assert coerce_number("Level", 2.6) == 3
    assert isinstance(coerce_number("Level", 2.6), int)
    assert coerce_number("BounceCount", "4") == 4
    assert coerce_number("DamagePerPeg", 2) == pytest.approx(2.0)
    assert isinstance(coerce_number("DamagePerPeg", 2), float)


def test_record_lookup_helpers() -> None:
    record = {
        "englishDisplayName": "  ",
        "enemyName": "Slime",
        "ComponentData": {"OrbComponent": {"Level": 2}},
        "locDescStrings": ["a", "", None, 3],
    }

    assert first_text(record, ["englishDisplayName", "enemyName"]) == "Slime"
    assert get_path(record, "ComponentData", "OrbComponent", "Level") == 2
    assert get_path(record, "ComponentData", "Nope", "Level") is None
    assert string_list(record["locDescStrings"]) == ["a", "3"]
    assert string_list("not a list") == []


def test_sanitize_raw_data_flattens_complex_values() -> None:
    ref = AssetRef(path_id=42, file_id=1, type_name="Sprite", name="orb_icon")
    record = {
        "name": "Orbelisk",
        "level": 2,
        "ratio": 0.5,
        "active": True,
        "sprite": ref,
        "tags": ["a", 1, {"nested": True}],
        "stats": {"hp": 3},
    }

    sanitized = sanitize_raw_data(record)

    assert sanitized["name"] == "Orbelisk"
    assert sanitized["level"] == 2
    assert sanitized["active"] is True
    assert sanitized["sprite"] == "orb_icon#1:42"
    assert sanitized["tags"] == ["a", 1, "{'nested': True}"]
    assert sanitized["stats"] == "{'hp': 3}"
    assert sanitize_raw_data(None) == {}
