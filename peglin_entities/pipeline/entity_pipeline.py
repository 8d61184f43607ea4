"""Batch pipeline from raw asset records to sprite-linked entities.

Flow per asset:
1. GameObject gate (orb components only) or pachinko-ball rejection
2. Classification (or the caller's explicit kind)
3. Extraction with localization parameters
4. Inline sprite geometry when the record references a sprite directly

Entities left without a sprite are then correlated against the sprite catalog and
the correlation cache is written once at the end of the run.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from loguru import logger
from pydantic import BaseModel, Field

from peglin_entities.correlation import (
    Correlation,
    CorrelationCache,
    SpriteCorrelator,
    filter_catalog,
)
from peglin_entities.extraction import (
    AnyEntity,
    CorrelationMethod,
    EntityClassifier,
    EntityExtractor,
    EntityKind,
    GameObjectData,
    LocalizationTable,
    aggregate_components,
    extract_localization_params,
    find_sprite_reference,
)
from peglin_entities.extraction.raw_values import get_path
from peglin_entities.sprites import SpriteGeometryResolver, SpriteHandle, SpriteMetadata, SpriteType
from peglin_entities.utils.config import Config, load_config
from peglin_entities.utils.logging_setup import setup_logging

BitmapWriter = Callable[[SpriteHandle, SpriteMetadata], bool]


class SpriteSource(BaseModel):
    """Resolved sprite handle plus texture size, as supplied by the asset layer."""

    handle: SpriteHandle
    pixel_width: int
    pixel_height: int
    source_name: str = ""


class AssetInput(BaseModel):
    """One asset handed to the pipeline by the bundle walker."""

    asset_name: str
    record: Dict[str, Any] = Field(default_factory=dict)
    kind: Optional[EntityKind] = None
    localization_params: Optional[Dict[str, str]] = None
    sprite: Optional[SpriteSource] = None
    game_object: Optional[GameObjectData] = None


class PipelineResult(BaseModel):
    """Output of one pipeline run."""

    entities: List[AnyEntity] = Field(default_factory=list)
    sprites: List[SpriteMetadata] = Field(default_factory=list)
    correlations: List[Correlation] = Field(default_factory=list)
    stats: Dict[str, int] = Field(default_factory=dict)


@dataclass
class ProcessedAsset:
    entity: AnyEntity | None = None
    sprite: SpriteMetadata | None = None
    skipped: str | None = None


class EntityPipeline:
    """Classify, extract and sprite-link a batch of raw asset records."""

    def __init__(
        self,
        config: Config | None = None,
        *,
        classifier: EntityClassifier | None = None,
        extractor: EntityExtractor | None = None,
        geometry: SpriteGeometryResolver | None = None,
        correlator: SpriteCorrelator | None = None,
        cache: CorrelationCache | None = None,
        localization: LocalizationTable | None = None,
        bitmap_writer: BitmapWriter | None = None,
    ) -> None:
        self.config = config or Config()
        self.classifier = classifier or EntityClassifier(self.config.classification)
        self.extractor = extractor or EntityExtractor(
            self.config.extraction, localization=localization
        )
        self.geometry = geometry or SpriteGeometryResolver(self.config.sprites)
        if correlator is None:
            cache = cache if cache is not None else CorrelationCache(config=self.config.correlation)
            correlator = SpriteCorrelator(self.config.correlation, cache=cache)
        self.correlator = correlator
        self.bitmap_writer = bitmap_writer

    @property
    def cache(self) -> CorrelationCache:
        return self.correlator.cache

    @classmethod
    def from_config(
        cls, yaml_path: str | Path = "config/config.yaml", **overrides: Any
    ) -> EntityPipeline:
        """Load configuration, configure logging and build the pipeline."""
        config = load_config(yaml_path)
        setup_logging(config.logging)

        if "localization" not in overrides and config.extraction.localization_path:
            overrides["localization"] = _load_localization(
                Path(config.extraction.localization_path), config.extraction.language
            )
        return cls(config, **overrides)

    # Single asset
    def process(self, asset: AssetInput) -> ProcessedAsset:
        """Run one asset through classification, extraction and inline sprite resolution."""
        record: Dict[str, Any] = dict(asset.record)
        loc_params = asset.localization_params
        kind = asset.kind

        if asset.game_object is not None:
            game_object = asset.game_object
            if not self.classifier.is_orb_game_object(game_object):
                return ProcessedAsset(skipped="not_orb_game_object")
            record = self._game_object_record(game_object, record)
            kind = EntityKind.ORB
            if loc_params is None:
                loc_params = self._game_object_params(game_object)
        elif self.classifier.is_pachinko_ball_data(record):
            if kind == EntityKind.ORB:
                return ProcessedAsset(skipped="pachinko_ball")
            kind = kind or self.classifier.classify(
                record, [k for k in self.classifier.default_order if k != EntityKind.ORB]
            )
        else:
            kind = kind or self.classifier.classify(record)

        if kind is None:
            return ProcessedAsset(skipped="unclassified")

        name = asset.asset_name or (asset.game_object.name if asset.game_object else "")
        entity = self.extractor.extract(kind, name, record, loc_params)
        if entity is None:
            return ProcessedAsset(skipped="extraction_failed")

        sprite = self._resolve_inline_sprite(entity, record, asset)
        return ProcessedAsset(entity=entity, sprite=sprite)

    # Batch
    def run(
        self,
        assets: Iterable[AssetInput],
        catalog: Sequence[SpriteMetadata] = (),
        *,
        verify_direct: bool = False,
        persist: bool = True,
    ) -> PipelineResult:
        """Process a finite batch, correlate unlinked entities and persist the cache."""
        stats: Dict[str, int] = {
            "total": 0,
            "entities": 0,
            "skipped": 0,
            "failed": 0,
            "inline_sprites": 0,
            "correlated": 0,
            "uncorrelated": 0,
        }
        entities: List[AnyEntity] = []
        sprites: List[SpriteMetadata] = []

        for asset in assets:
            stats["total"] += 1
            try:
                outcome = self.process(asset)
            except Exception as exc:  # noqa: BLE001
                stats["failed"] += 1
                logger.warning("Failed to process asset {}: {}", asset.asset_name, exc)
                continue

            if outcome.entity is None:
                key = "failed" if outcome.skipped == "extraction_failed" else "skipped"
                stats[key] += 1
                logger.debug("Asset {} not extracted ({})", asset.asset_name, outcome.skipped)
                continue

            entities.append(outcome.entity)
            stats["entities"] += 1
            if outcome.sprite is not None:
                sprites.append(outcome.sprite)
                stats["inline_sprites"] += 1

        correlations = self._correlate(entities, catalog, verify_direct)
        for correlation in correlations:
            key = "uncorrelated" if correlation.method == CorrelationMethod.NONE else "correlated"
            stats[key] += 1

        if persist:
            self.cache.save()

        logger.info(
            "Pipeline finished: {} entities from {} assets ({} skipped, {} failed), "
            "{} inline sprites, {} correlated, {} uncorrelated",
            stats["entities"],
            stats["total"],
            stats["skipped"],
            stats["failed"],
            stats["inline_sprites"],
            stats["correlated"],
            stats["uncorrelated"],
        )
        return PipelineResult(
            entities=entities, sprites=sprites, correlations=correlations, stats=stats
        )

    # Helpers
    def _game_object_record(
        self, game_object: GameObjectData, record: Dict[str, Any]
    ) -> Dict[str, Any]:
        parts: List[Dict[str, Any]] = [record]
        parts.extend(component.data for component in game_object.components)
        orb_component = get_path(game_object.raw_data, "ComponentData", "OrbComponent")
        if isinstance(orb_component, dict):
            parts.append(orb_component)
        merged = aggregate_components(parts)
        if "ComponentData" in game_object.raw_data:
            merged.setdefault("ComponentData", game_object.raw_data["ComponentData"])
        return merged

    def _game_object_params(self, game_object: GameObjectData) -> Dict[str, str] | None:
        for component in game_object.components:
            if self.classifier.is_localization_params_manager(component.data):
                return extract_localization_params(component.data)
        return None

    def _resolve_inline_sprite(
        self, entity: AnyEntity, record: Dict[str, Any], asset: AssetInput
    ) -> SpriteMetadata | None:
        reference = find_sprite_reference(record, self.config.extraction.sprite_field_names)
        if reference is None or asset.sprite is None:
            return None

        source = asset.sprite
        metadata = self.geometry.resolve(
            source.handle,
            source.pixel_width,
            source.pixel_height,
            source.source_name or reference.name or entity.id,
            SpriteType(entity.kind.value),
        )
        if self.bitmap_writer is not None and not self.bitmap_writer(source.handle, metadata):
            logger.warning("Bitmap export failed for sprite {} ({})", metadata.id, entity.id)

        entity.link_sprite(
            metadata.id,
            metadata.file_path,
            self.config.correlation.exact_confidence,
            CorrelationMethod.EXACT,
        )
        return metadata

    def _correlate(
        self,
        entities: Sequence[AnyEntity],
        catalog: Sequence[SpriteMetadata],
        verify_direct: bool,
    ) -> List[Correlation]:
        if not catalog:
            return []

        linked = [entity for entity in entities if entity.sprite_id is not None]
        unlinked = [entity for entity in entities if entity.sprite_id is None]
        correlations = list(self.correlator.correlate_entities(unlinked, catalog).values())

        if verify_direct:
            for entity in linked:
                check = self.correlator.correlate(
                    entity.id,
                    entity.name,
                    entity.kind,
                    filter_catalog(catalog, SpriteType(entity.kind.value)),
                    use_cache=False,
                )
                if check.correlated_sprite_id and check.correlated_sprite_id != entity.sprite_id:
                    logger.warning(
                        "Direct sprite {} for {} disagrees with name match {} ({})",
                        entity.sprite_id,
                        entity.id,
                        check.correlated_sprite_id,
                        check.method.value,
                    )
                correlations.append(check)
        return correlations


def _load_localization(path: Path, language: str) -> LocalizationTable:
    if path.suffix.lower() == ".csv":
        return LocalizationTable.from_csv(path)
    return LocalizationTable.from_json(path, language=language)
