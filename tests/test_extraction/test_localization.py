"""Tests for token resolution and localization lookups."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from peglin_entities.extraction.localization import (
    LocalizationTable,
    TokenResolver,
    extract_localization_params,
)


def test_resolves_both_placeholder_forms() -> None:
    resolver = TokenResolver()

    text = resolver.resolve("Deal {DAMAGE} damage, crit {[CRIT]}.", {"DAMAGE": "3", "CRIT": "5"})

    assert text == "Deal 3 damage, crit 5."


def test_resolution_is_literal_and_single_pass() -> None:
    resolver = TokenResolver()

    text = resolver.resolve("{A} and {[A]}", {"A": "{B}"})

    assert text == "{B} and {B}"
    assert resolver.resolve("{unknown}", {"A": "1"}) == "{unknown}"


def test_resolve_without_parameters_returns_text() -> None:
    resolver = TokenResolver()

    assert resolver.resolve("Heal {X}", None) == "Heal {X}"
    assert resolver.resolve(None, {"X": "1"}) == ""
    assert resolver.resolve_all(["{X}", "y"], {"X": "1"}) == ["1", "y"]


def test_table_from_mapping_and_lookup() -> None:
    table = LocalizationTable.from_mapping(
        {
            "Relics/orbelisk_name": "Orbelisk",
            "Orbs/stone_desc": {"English": "Hits hard", "French": "Frappe fort"},
        }
    )

    assert table.get_translation("Relics/orbelisk_name") == "Orbelisk"
    assert table.get_translation("Orbs/stone_desc", "French") == "Frappe fort"
    assert table.get_translation("Orbs/missing") is None
    assert table.has_key("Orbs/stone_desc")
    assert table.find_keys_containing("ORBELISK") == ["Relics/orbelisk_name"]
    assert table.languages() == ["English", "French"]
    assert len(table) == 2


def test_table_from_json(tmp_path: Path) -> None:
    path = tmp_path / "loc.json"
    path.write_text(json.dumps({"Enemies/slime": {"English": "Slime"}}), encoding="utf-8")

    table = LocalizationTable.from_json(path)

    assert table.get_translation("Enemies/slime") == "Slime"


def test_table_from_json_rejects_non_object(tmp_path: Path) -> None:
    path = tmp_path / "loc.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ValueError):
        LocalizationTable.from_json(path)

    with pytest.raises(FileNotFoundError):
        LocalizationTable.from_json(tmp_path / "missing.json")


def test_table_from_csv(tmp_path: Path) -> None:
    path = tmp_path / "loc.csv"
    path.write_text(
        "Key,Type,Desc,English,German\n"
        "Orbs/stone_name,Text,,Stone,Stein\n"
        ",Text,,orphan,\n"
        "Orbs/daggorb_name,Text,,Daggorb,\n",
        encoding="utf-8",
    )

    table = LocalizationTable.from_csv(path)

    assert len(table) == 2
    assert table.get_translation("Orbs/stone_name", "German") == "Stein"
    assert table.get_translation("Orbs/daggorb_name", "German") is None
    assert "Type" not in table.languages()


def test_extract_params_supports_both_item_shapes() -> None:
    component = {
        "_IsGlobalManager": False,
        "_Params": [
            {"Name": "DAMAGE", "Value": 3},
            {"key": "CRIT", "value": "5"},
            {"Name": "", "Value": "ignored"},
            "garbage",
        ],
    }

    assert extract_localization_params(component) == {"DAMAGE": "3", "CRIT": "5"}


def test_extract_params_returns_none_when_empty() -> None:
    assert extract_localization_params({"_Params": []}) is None
    assert extract_localization_params({"_Params": [{"Name": "X"}]}) is None
    assert extract_localization_params({}) is None
