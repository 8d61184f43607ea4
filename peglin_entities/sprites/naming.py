"""Sprite naming helpers: ids, type inference and output paths."""

from __future__ import annotations

import uuid
from typing import Sequence

from loguru import logger

from peglin_entities.sprites.models import SpriteType

SPRITE_ROOT = "extracted-data/sprites"

UI_KEYWORDS: Sequence[str] = (
    "ui",
    "interface",
    "button",
    "panel",
    "background",
    "cursor",
    "frame",
    "border",
    "menu",
    "loading",
    "effect",
    "particle",
)
RELIC_KEYWORDS: Sequence[str] = ("relic", "artifact", "item", "trinket", "amulet", "charm")
ENEMY_KEYWORDS: Sequence[str] = (
    "enemy",
    "monster",
    "boss",
    "slime",
    "spider",
    "bat",
    "rat",
    "dragon",
    "ghost",
)
ORB_KEYWORDS: Sequence[str] = ("orb", "ball", "projectile", "stone", "sphere", "pachinko")

CLONE_SUFFIXES: Sequence[str] = ("(Clone)", "_1", "_2", "_3", "_Instance")


def generate_sprite_id(name: str | None) -> str:
    """Lower-case the name with spaces and dots turned into underscores."""
    if not name:
        return f"sprite_{uuid.uuid4().hex}"
    return name.replace(" ", "_").replace(".", "_").lower()


def infer_sprite_type(name: str | None) -> SpriteType | None:
    """Guess the sprite family from its name; UI art and unclear names give ``None``."""
    lowered = (name or "").lower()
    if any(keyword in lowered for keyword in UI_KEYWORDS):
        logger.debug("Skipping UI/interface sprite: {}", name)
        return None
    if any(keyword in lowered for keyword in RELIC_KEYWORDS):
        return SpriteType.RELIC
    if any(keyword in lowered for keyword in ENEMY_KEYWORDS):
        return SpriteType.ENEMY
    if any(keyword in lowered for keyword in ORB_KEYWORDS):
        return SpriteType.ORB
    logger.debug("Uncertain sprite classification for: {}", name)
    return None


def sprite_file_path(sprite_id: str, sprite_type: SpriteType | None) -> str:
    folder = sprite_type.folder if sprite_type else "unknown"
    return f"{SPRITE_ROOT}/{folder}/{sprite_id}.png"


def clean_sprite_name(name: str | None) -> str:
    """Strip Unity clone/instance suffixes (case-insensitive, applied in order)."""
    if not name:
        return "unknown"

    cleaned = name
    for suffix in CLONE_SUFFIXES:
        if cleaned.lower().endswith(suffix.lower()):
            cleaned = cleaned[: -len(suffix)]
    return cleaned.strip()
