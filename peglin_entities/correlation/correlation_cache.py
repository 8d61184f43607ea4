"""Persistent store of entity to sprite correlations."""

from __future__ import annotations

import csv
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, Iterable, List

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from peglin_entities.extraction.models import CorrelationMethod
from peglin_entities.utils.config import CorrelationConfig


class Correlation(BaseModel):
    """Link between one entity and a catalog sprite, with how it was found."""

    model_config = ConfigDict(extra="ignore")

    entity_id: str
    entity_name: str = ""
    entity_type: str
    correlated_sprite_id: str | None = None
    sprite_file_path: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    method: CorrelationMethod = CorrelationMethod.NONE
    alternate_sprite_ids: List[str] = Field(default_factory=list)
    # Set on "none" outcomes so they are only reused against the same catalog.
    catalog_fingerprint: str | None = None
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def cache_key(self) -> str:
        return CorrelationCache.make_key(self.entity_type, self.entity_id)

    def summary(self) -> str:
        """Short, human-readable description for log lines."""
        target = self.correlated_sprite_id or "-"
        return (
            f"{self.entity_type}:{self.entity_id} -> {target} via {self.method.value} "
            f"(confidence={self.confidence:.2f}, alternates={len(self.alternate_sprite_ids)})"
        )


class CorrelationCacheState(BaseModel):
    """Serialized correlation cache state."""

    model_config = ConfigDict(extra="ignore")

    version: int = 1
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    records: Dict[str, Correlation] = Field(default_factory=dict)


class CorrelationCache:
    """Load-once, merge-on-write cache keyed by ``"{entity_type}:{entity_id}"``.

    A single process is expected to own the cache file; concurrent writers are not
    detected.
    """

    def __init__(
        self,
        cache_path: str | Path | None = None,
        config: CorrelationConfig | None = None,
    ) -> None:
        self.config = config or CorrelationConfig()
        self.cache_path = Path(cache_path) if cache_path else Path(self.config.cache_path)

        self._state = CorrelationCacheState()
        if self.cache_path.exists():
            self._state = self._load_state(self.cache_path)

    @staticmethod
    def make_key(entity_type: str, entity_id: str) -> str:
        return f"{entity_type}:{entity_id}"

    # Lookup
    def get(self, entity_type: str, entity_id: str) -> Correlation | None:
        return self._state.records.get(self.make_key(entity_type, entity_id))

    def all_records(self) -> List[Correlation]:
        """Return all correlations sorted by cache key."""
        return [self._state.records[key] for key in sorted(self._state.records)]

    def __len__(self) -> int:
        return len(self._state.records)

    def __contains__(self, key: object) -> bool:
        return key in self._state.records

    # Updates
    def merge(self, correlations: Iterable[Correlation]) -> int:
        """Overwrite entries by key (last write wins); returns the number merged."""
        merged = 0
        for correlation in correlations:
            if not correlation.entity_type or not correlation.entity_id:
                logger.debug("Skipping correlation without type or id: {}", correlation.summary())
                continue
            self._state.records[correlation.cache_key] = correlation
            merged += 1

        if merged:
            self._bump_version()
        return merged

    def clear(self, persist: bool = True) -> None:
        """Drop every correlation; the emptied cache is written back when ``persist``."""
        removed = len(self._state.records)
        self._state.records.clear()
        self._bump_version()
        if persist:
            self.save()
        logger.info("Cleared {} cached correlations", removed)

    # Persistence
    def save(self) -> Path:
        """Write the cache to ``cache_path``; I/O errors propagate."""
        self._write_json(self.cache_path)
        logger.info("Saved {} correlations to {}", len(self._state.records), self.cache_path)
        return self.cache_path

    def export_json(self, path: str | Path) -> Path:
        target = Path(path)
        self._write_json(target)
        logger.info("Exported {} correlations to {}", len(self._state.records), target)
        return target

    def export_csv(self, path: str | Path) -> Path:
        """Export correlations to CSV for manual review."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        fieldnames = [
            "cache_key",
            "entity_type",
            "entity_id",
            "entity_name",
            "correlated_sprite_id",
            "sprite_file_path",
            "method",
            "confidence",
            "alternate_sprite_ids",
            "last_updated",
        ]

        with target.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=fieldnames)
            writer.writeheader()
            for record in self.all_records():
                writer.writerow(
                    {
                        "cache_key": record.cache_key,
                        "entity_type": record.entity_type,
                        "entity_id": record.entity_id,
                        "entity_name": record.entity_name,
                        "correlated_sprite_id": record.correlated_sprite_id or "",
                        "sprite_file_path": record.sprite_file_path or "",
                        "method": record.method.value,
                        "confidence": f"{record.confidence:.3f}",
                        "alternate_sprite_ids": " | ".join(record.alternate_sprite_ids),
                        "last_updated": record.last_updated.isoformat(),
                    }
                )

        logger.info("Exported correlations to CSV at {}", target)
        return target

    # Helpers
    def _bump_version(self) -> None:
        self._state.version += 1
        self._state.updated_at = datetime.now(UTC)

    def _write_json(self, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = self._state.model_dump(mode="json")
        target.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")

    def _load_state(self, path: Path) -> CorrelationCacheState:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            state = CorrelationCacheState.model_validate(payload)
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
            logger.warning("Failed to load correlation cache from {}: {}", path, exc)
            return CorrelationCacheState()

        logger.info("Loaded {} cached correlations from {}", len(state.records), path)
        return state
