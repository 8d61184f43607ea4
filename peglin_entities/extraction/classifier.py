"""Heuristic entity classification over raw field records.

Each entity kind is recognised by a signature: the number of its indicative fields
present in the record, compared against a kind-specific threshold. Absence of a kind
is a normal outcome, so nothing here raises on unexpected input.
"""

from __future__ import annotations

from typing import Any, Callable, Container, Dict, Iterable, Mapping, Sequence

from loguru import logger

from peglin_entities.extraction.models import EntityKind, GameObjectData
from peglin_entities.extraction.raw_values import get_path
from peglin_entities.utils.config import ClassificationConfig


def count_present(record: Container[str], fields: Iterable[str]) -> int:
    """Count how many of ``fields`` are keys of ``record``."""
    return sum(1 for field in fields if field in record)


class EntityClassifier:
    """Decide which entity kind, if any, a raw record represents."""

    def __init__(self, config: ClassificationConfig | None = None) -> None:
        self.config = config or ClassificationConfig()
        self._checks: Dict[EntityKind, Callable[[Mapping[str, Any]], bool]] = {
            EntityKind.RELIC: self.is_relic_data,
            EntityKind.ENEMY: self.is_enemy_data,
            EntityKind.ORB: self.is_orb_data,
        }
        self.default_order = [EntityKind(kind) for kind in self.config.kind_order]

    def classify(
        self, record: Any, kinds: Sequence[EntityKind] | None = None
    ) -> EntityKind | None:
        """Return the first kind (in ``kinds`` order) whose signature matches."""
        if not isinstance(record, Mapping):
            return None

        for kind in self.default_order if kinds is None else kinds:
            if self._checks[kind](record):
                logger.debug("Classified record as {}", kind.value, fields=len(record))
                return kind
        return None

    def is_relic_data(self, record: Mapping[str, Any]) -> bool:
        """Relics carry at least three of their five signature fields."""
        return count_present(record, self.config.relic_fields) >= self.config.relic_min_fields

    def is_enemy_data(self, record: Mapping[str, Any]) -> bool:
        """Enemies need two signature fields; an enemy-like ``LocKey`` counts extra."""
        match_count = count_present(record, self.config.enemy_fields)

        loc_key = record.get(self.config.enemy_loc_key_field)
        if isinstance(loc_key, str):
            lowered = loc_key.lower()
            if any(keyword in lowered for keyword in self.config.enemy_keywords):
                match_count += self.config.enemy_keyword_bonus

        return match_count >= self.config.enemy_min_fields

    def is_orb_data(self, record: Mapping[str, Any]) -> bool:
        """Orbs need three signature fields, plus attack-shape evidence when exactly three."""
        found = count_present(record, self.config.orb_fields)
        if found < self.config.orb_min_fields:
            logger.debug(
                "Not enough orb fields ({} < {})", found, self.config.orb_min_fields
            )
            return False

        if found >= self.config.orb_strong_fields:
            return True

        has_attack_fields = count_present(record, self.config.orb_attack_fields) > 0
        has_script_ref = self.config.orb_script_field in record
        logger.debug(
            "Orb candidate with {} fields: attack fields={}, script ref={}",
            found,
            has_attack_fields,
            has_script_ref,
        )
        return has_attack_fields or has_script_ref

    def is_pachinko_ball_data(self, record: Mapping[str, Any]) -> bool:
        """Ball-physics components: ``_renderer`` plus enough physics fields."""
        if not isinstance(record, Mapping):
            return False
        if self.config.pachinko_required_field not in record:
            return False
        return count_present(record, self.config.pachinko_fields) >= self.config.pachinko_min_fields

    @staticmethod
    def is_localization_params_manager(record: Mapping[str, Any]) -> bool:
        if not isinstance(record, Mapping):
            return False
        return "_Params" in record and "_IsGlobalManager" in record

    def is_orb_game_object(self, game_object: GameObjectData) -> bool:
        """Decide whether a composed GameObject is an orb.

        A name that merely looks like an orb is not enough; the object has to expose
        orb component data, orb fields or an orb-related component type.
        """
        name = (game_object.name or "").lower()
        if any(exclusion in name for exclusion in self.config.game_object_exclusions):
            logger.debug("GameObject '{}' excluded by name", game_object.name)
            return False

        raw_data = game_object.raw_data or {}
        if "OrbComponent" in raw_data:
            return True
        if get_path(raw_data, "ComponentData", "OrbComponent") is not None:
            return True

        nested_fields = set(raw_data.keys())
        component_data = raw_data.get("ComponentData")
        if isinstance(component_data, Mapping):
            for value in component_data.values():
                if isinstance(value, Mapping):
                    nested_fields.update(value.keys())
        for component in game_object.components:
            nested_fields.update(component.data.keys())

        orb_field_count = count_present(nested_fields, self.config.game_object_orb_fields)
        if orb_field_count >= self.config.game_object_min_orb_fields:
            return True

        patterns = [pattern.lower() for pattern in self.config.orb_component_types]
        for component in game_object.components:
            component_type = (component.type or "").lower()
            if any(pattern in component_type for pattern in patterns):
                return True

        return False
