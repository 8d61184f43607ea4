"""Shared data models for extraction modules."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EntityKind(str, Enum):
    """Entity variants recognised in the asset store."""

    RELIC = "relic"
    ENEMY = "enemy"
    ORB = "orb"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class CorrelationMethod(str, Enum):
    """How an entity was linked to its sprite."""

    EXACT = "exact"
    NORMALIZED = "normalized"
    FUZZY = "fuzzy"
    KEYWORD = "keyword"
    NONE = "none"


class EntityRecord(BaseModel):
    """Common attributes of every extracted entity."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    kind: EntityKind
    id: str
    name: str
    description: str = ""
    loc_key: Optional[str] = None
    raw_data: Dict[str, Any] = Field(default_factory=dict)

    # Sprite correlation fields
    sprite_id: Optional[str] = None
    sprite_file_path: Optional[str] = None
    correlation_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    correlation_method: Optional[CorrelationMethod] = None
    alternate_sprite_ids: List[str] = Field(default_factory=list)

    def link_sprite(
        self,
        sprite_id: Optional[str],
        file_path: Optional[str],
        confidence: float,
        method: CorrelationMethod,
        alternates: Optional[List[str]] = None,
    ) -> None:
        """Annotate the entity with its sprite link."""
        self.sprite_id = sprite_id
        self.sprite_file_path = file_path
        self.correlation_confidence = confidence
        self.correlation_method = method
        self.alternate_sprite_ids = list(alternates or [])


class RelicRecord(EntityRecord):
    kind: Literal[EntityKind.RELIC] = EntityKind.RELIC
    effect: str = ""
    rarity_value: Optional[int] = None
    rarity: str = ""


class EnemyRecord(EntityRecord):
    kind: Literal[EntityKind.ENEMY] = EntityKind.ENEMY
    health: Optional[float] = None
    max_health_cruciball: Optional[float] = None
    attack_damage: Optional[float] = None
    ranged_attack_damage: Optional[float] = None
    location: Optional[str] = None
    enemy_type: Optional[str] = None


class OrbRecord(EntityRecord):
    kind: Literal[EntityKind.ORB] = EntityKind.ORB
    damage_per_peg: Optional[float] = None
    crit_damage_per_peg: Optional[float] = None
    level: Optional[int] = None
    orb_type: str = "ATTACK"
    description_strings: List[str] = Field(default_factory=list)
    rarity_value: Optional[int] = None
    rarity: Optional[str] = None


AnyEntity = Union[RelicRecord, EnemyRecord, OrbRecord]


class ComponentData(BaseModel):
    """One component attached to a GameObject, with its decoded fields."""

    model_config = ConfigDict(extra="ignore")

    type: str = ""
    name: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)


class GameObjectData(BaseModel):
    """A composed object: a name plus its nested components."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""
    path_id: int = 0
    components: List[ComponentData] = Field(default_factory=list)
    raw_data: Dict[str, Any] = Field(default_factory=dict)
