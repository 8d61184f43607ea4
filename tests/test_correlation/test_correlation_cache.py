"""Tests for the persistent correlation cache."""

from __future__ import annotations

import csv
import json
from pathlib import Path

from peglin_entities.correlation.correlation_cache import Correlation, CorrelationCache
from peglin_entities.extraction.models import CorrelationMethod


def _correlation(entity_id: str = "stone", sprite_id: str | None = "orb_stone", **kwargs) -> Correlation:
    defaults = {
        "entity_name": entity_id.title(),
        "entity_type": "orb",
        "confidence": 1.0 if sprite_id else 0.0,
        "method": CorrelationMethod.EXACT if sprite_id else CorrelationMethod.NONE,
    }
    defaults.update(kwargs)
    return Correlation(entity_id=entity_id, correlated_sprite_id=sprite_id, **defaults)


def test_merge_and_lookup(tmp_path: Path) -> None:
    cache = CorrelationCache(cache_path=tmp_path / "cache.json")

    merged = cache.merge([_correlation(), _correlation("daggorb", "orb_daggorb")])

    assert merged == 2
    assert len(cache) == 2
    assert "orb:stone" in cache
    assert cache.get("orb", "stone").correlated_sprite_id == "orb_stone"
    assert cache.get("relic", "stone") is None


def test_merge_overwrites_existing_key(tmp_path: Path) -> None:
    cache = CorrelationCache(cache_path=tmp_path / "cache.json")
    cache.merge([_correlation()])

    cache.merge(
        [_correlation(sprite_id="stone_alt", confidence=0.8, method=CorrelationMethod.FUZZY)]
    )

    assert len(cache) == 1
    cached = cache.get("orb", "stone")
    assert cached.correlated_sprite_id == "stone_alt"
    assert cached.method == CorrelationMethod.FUZZY


def test_same_id_different_type_does_not_collide(tmp_path: Path) -> None:
    cache = CorrelationCache(cache_path=tmp_path / "cache.json")

    cache.merge([_correlation("bomb"), _correlation("bomb", "relic_bomb", entity_type="relic")])

    assert len(cache) == 2
    assert [record.cache_key for record in cache.all_records()] == ["orb:bomb", "relic:bomb"]


def test_save_and_reload(tmp_path: Path) -> None:
    cache_path = tmp_path / "nested" / "cache.json"
    cache = CorrelationCache(cache_path=cache_path)
    cache.merge([_correlation(), _correlation("ghost", None, entity_type="enemy")])

    cache.save()
    reloaded = CorrelationCache(cache_path=cache_path)

    assert len(reloaded) == 2
    assert reloaded.get("enemy", "ghost").method == CorrelationMethod.NONE
    payload = json.loads(cache_path.read_text(encoding="utf-8"))
    assert payload["version"] == 2
    assert set(payload["records"]) == {"orb:stone", "enemy:ghost"}


def test_corrupt_cache_file_starts_empty(tmp_path: Path) -> None:
    cache_path = tmp_path / "cache.json"
    cache_path.write_text("{not json", encoding="utf-8")

    cache = CorrelationCache(cache_path=cache_path)

    assert len(cache) == 0


def test_invalid_records_start_empty(tmp_path: Path) -> None:
    cache_path = tmp_path / "cache.json"
    cache_path.write_text(json.dumps({"records": {"orb:x": {"confidence": 3}}}), encoding="utf-8")

    cache = CorrelationCache(cache_path=cache_path)

    assert len(cache) == 0


def test_clear_persists_empty_cache(tmp_path: Path) -> None:
    cache_path = tmp_path / "cache.json"
    cache = CorrelationCache(cache_path=cache_path)
    cache.merge([_correlation()])
    cache.save()

    cache.clear()

    assert len(cache) == 0
    assert len(CorrelationCache(cache_path=cache_path)) == 0


def test_merge_skips_records_without_identity(tmp_path: Path) -> None:
    cache = CorrelationCache(cache_path=tmp_path / "cache.json")

    assert cache.merge([_correlation(entity_id="")]) == 0
    assert len(cache) == 0


def test_export_json_and_csv(tmp_path: Path) -> None:
    cache = CorrelationCache(cache_path=tmp_path / "cache.json")
    cache.merge(
        [
            _correlation(
                "doctorb",
                "doctorbe",
                confidence=0.875,
                method=CorrelationMethod.FUZZY,
                alternate_sprite_ids=["doctor", "orbdoc"],
            )
        ]
    )

    json_path = cache.export_json(tmp_path / "out" / "correlations.json")
    csv_path = cache.export_csv(tmp_path / "out" / "correlations.csv")

    exported = json.loads(json_path.read_text(encoding="utf-8"))
    assert exported["records"]["orb:doctorb"]["method"] == "fuzzy"

    with csv_path.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert len(rows) == 1
    assert rows[0]["cache_key"] == "orb:doctorb"
    assert rows[0]["confidence"] == "0.875"
    assert rows[0]["alternate_sprite_ids"] == "doctor | orbdoc"


def test_summary_mentions_method_and_target() -> None:
    summary = _correlation().summary()

    assert "orb:stone -> orb_stone via exact" in summary
