"""Sprite models, naming helpers and frame geometry."""

from peglin_entities.sprites.geometry import (
    FactorPair,
    FrameLayout,
    HorizontalStrip,
    LayoutStrategy,
    SpriteGeometryResolver,
    SquareGrid,
    VerticalStrip,
)
from peglin_entities.sprites.models import (
    SpriteFrame,
    SpriteHandle,
    SpriteMetadata,
    SpriteRect,
    SpriteType,
)
from peglin_entities.sprites.naming import (
    clean_sprite_name,
    generate_sprite_id,
    infer_sprite_type,
    sprite_file_path,
)

__all__ = [
    "FactorPair",
    "FrameLayout",
    "HorizontalStrip",
    "LayoutStrategy",
    "SpriteFrame",
    "SpriteGeometryResolver",
    "SpriteHandle",
    "SpriteMetadata",
    "SpriteRect",
    "SpriteType",
    "SquareGrid",
    "VerticalStrip",
    "clean_sprite_name",
    "generate_sprite_id",
    "infer_sprite_type",
    "sprite_file_path",
]
