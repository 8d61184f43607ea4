"""Sprite metadata models."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SpriteType(str, Enum):
    """Entity family a sprite belongs to."""

    RELIC = "relic"
    ENEMY = "enemy"
    ORB = "orb"

    @property
    def folder(self) -> str:
        return {"relic": "relics", "enemy": "enemies", "orb": "orbs"}[self.value]


class SpriteRect(BaseModel):
    """Sub-rectangle of a texture, in pixels."""

    model_config = ConfigDict(frozen=True)

    x: int = 0
    y: int = 0
    width: int
    height: int

    def covers(self, width: int, height: int) -> bool:
        """True when the rect spans the whole ``width`` x ``height`` texture."""
        return self.x == 0 and self.y == 0 and self.width == width and self.height == height


class SpriteHandle(BaseModel):
    """Resolved sprite or texture reference handed over by the asset layer."""

    name: str = ""
    path_id: int = 0
    rect: Optional[SpriteRect] = None


class SpriteFrame(BaseModel):
    """One frame of an atlas or sprite sheet."""

    name: str
    x: int
    y: int
    width: int
    height: int
    pivot_x: float = 0.5
    pivot_y: float = 0.5
    sprite_path_id: int = 0


class SpriteMetadata(BaseModel):
    """Catalog entry describing one extracted sprite and its frame layout."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    type: Optional[SpriteType] = None
    file_path: str = ""
    width: int = 0
    height: int = 0
    frame_x: int = 0
    frame_y: int = 0
    frame_width: int = 0
    frame_height: int = 0
    frame_count: int = 1
    is_atlas: bool = False
    atlas_frames: List[SpriteFrame] = Field(default_factory=list)
    source_bundle: Optional[str] = None
