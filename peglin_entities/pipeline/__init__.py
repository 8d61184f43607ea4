"""Pipeline orchestrators for batch entity extraction."""

from peglin_entities.pipeline.entity_pipeline import (
    AssetInput,
    EntityPipeline,
    PipelineResult,
    ProcessedAsset,
    SpriteSource,
)

__all__ = ["AssetInput", "EntityPipeline", "PipelineResult", "ProcessedAsset", "SpriteSource"]
