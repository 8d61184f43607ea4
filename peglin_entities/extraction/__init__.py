"""Extraction package exports."""

from peglin_entities.extraction.classifier import EntityClassifier, count_present
from peglin_entities.extraction.entity_extractor import (
    EntityExtractor,
    aggregate_components,
    clean_entity_id,
    find_sprite_reference,
)
from peglin_entities.extraction.localization import (
    LocalizationTable,
    TokenResolver,
    extract_localization_params,
)
from peglin_entities.extraction.models import (
    AnyEntity,
    ComponentData,
    CorrelationMethod,
    EnemyRecord,
    EntityKind,
    EntityRecord,
    GameObjectData,
    OrbRecord,
    RelicRecord,
)
from peglin_entities.extraction.raw_values import AssetRef, RawRecord, RawValue

__all__ = [
    "AnyEntity",
    "AssetRef",
    "ComponentData",
    "CorrelationMethod",
    "EnemyRecord",
    "EntityClassifier",
    "EntityExtractor",
    "EntityKind",
    "EntityRecord",
    "GameObjectData",
    "LocalizationTable",
    "OrbRecord",
    "RawRecord",
    "RawValue",
    "RelicRecord",
    "TokenResolver",
    "aggregate_components",
    "clean_entity_id",
    "count_present",
    "extract_localization_params",
    "find_sprite_reference",
]
