"""Build typed entities from classified raw records."""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence

from loguru import logger

from peglin_entities.extraction.localization import LocalizationTable, TokenResolver
from peglin_entities.extraction.models import (
    AnyEntity,
    EnemyRecord,
    EntityKind,
    OrbRecord,
    RelicRecord,
)
from peglin_entities.extraction.raw_values import (
    AssetRef,
    RawRecord,
    coerce_number,
    first_text,
    get_path,
    sanitize_raw_data,
    string_list,
    to_int,
    to_str,
)
from peglin_entities.utils.config import ExtractionConfig

_ID_REPLACEMENTS = {" ": "_", "-": "_", "(": "", ")": "", "[": "", "]": ""}
_ID_PATTERN = re.compile("|".join(re.escape(ch) for ch in _ID_REPLACEMENTS))


def clean_entity_id(asset_name: str | None) -> str:
    """Slug an asset name: lower-case, spaces/dashes to ``_``, brackets removed."""
    if not asset_name:
        return "unknown"
    return _ID_PATTERN.sub(lambda match: _ID_REPLACEMENTS[match.group(0)], asset_name.lower())


class EntityExtractor:
    """Turn a classified raw record into a relic, enemy or orb entity."""

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        localization: LocalizationTable | None = None,
        token_resolver: TokenResolver | None = None,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.localization = localization if localization is not None else LocalizationTable()
        self.token_resolver = token_resolver or TokenResolver()
        self._builders: Dict[
            EntityKind, Callable[[str, RawRecord, Mapping[str, str] | None], AnyEntity]
        ] = {
            EntityKind.RELIC: self._extract_relic,
            EntityKind.ENEMY: self._extract_enemy,
            EntityKind.ORB: self._extract_orb,
        }

    def extract(
        self,
        kind: EntityKind,
        asset_name: str,
        record: RawRecord,
        loc_params: Mapping[str, str] | None = None,
    ) -> AnyEntity | None:
        """Extract one entity; failures are logged and yield ``None``."""
        try:
            entity = self._builders[kind](asset_name, record, loc_params)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Error extracting {} from {}: {}", kind.value, asset_name, exc, asset=asset_name
            )
            return None

        if not loc_params:
            logger.debug(
                "No localization parameters available for {} {}", kind.value, entity.id
            )
        return entity

    # Kind-specific builders
    def _extract_relic(
        self, asset_name: str, record: RawRecord, loc_params: Mapping[str, str] | None
    ) -> RelicRecord:
        namespace = self.config.relic_namespace
        name, loc_key = self._resolve_name(
            EntityKind.RELIC, asset_name, record, namespace, self.config.display_name_fields
        )

        relic = RelicRecord(
            id=clean_entity_id(asset_name),
            name=name,
            loc_key=loc_key,
            description=self._resolve(first_text(record, self.config.description_fields), loc_params),
            effect=self._resolve(to_str(record.get("effect")), loc_params),
        )

        rarity_value = to_int(record.get("globalRarity"))
        if rarity_value is not None:
            relic.rarity_value = rarity_value
            relic.rarity = self.config.rarity_names.get(rarity_value, self.config.unknown_rarity)

        relic.raw_data = sanitize_raw_data(record)
        return relic

    def _extract_enemy(
        self, asset_name: str, record: RawRecord, loc_params: Mapping[str, str] | None
    ) -> EnemyRecord:
        namespace = self.config.enemy_namespace
        name, loc_key = self._resolve_name(
            EntityKind.ENEMY, asset_name, record, namespace, self.config.display_name_fields
        )

        enemy = EnemyRecord(
            id=clean_entity_id(asset_name),
            name=name,
            loc_key=loc_key,
            description=self._resolve(first_text(record, self.config.description_fields), loc_params),
            health=self._first_number(record, ["MaxHealth", "StartingHealth"]),
            max_health_cruciball=self._first_number(record, ["MaxHealthCruciball"]),
            attack_damage=self._first_number(record, ["MeleeAttackDamage", "DamagePerMeleeAttack"]),
            ranged_attack_damage=self._first_number(record, ["RangedAttackDamage"]),
            location=self._enum_name(record.get("location"), self.config.location_names),
            enemy_type=self._enum_name(record.get("Type"), self.config.enemy_type_names),
        )
        enemy.raw_data = sanitize_raw_data(record)
        return enemy

    def _extract_orb(
        self, asset_name: str, record: RawRecord, loc_params: Mapping[str, str] | None
    ) -> OrbRecord:
        namespace = self.config.orb_namespace
        display_fields = [*self.config.orb_display_name_fields, *self.config.display_name_fields]
        name, loc_key = self._resolve_name(
            EntityKind.ORB, asset_name, record, namespace, display_fields
        )

        description_strings = self.token_resolver.resolve_all(
            self._description_strings(record), loc_params
        )

        orb = OrbRecord(
            id=clean_entity_id(asset_name),
            name=name,
            loc_key=loc_key,
            description=self._resolve(first_text(record, self.config.description_fields), loc_params),
            description_strings=description_strings,
            damage_per_peg=self._orb_number(record, "DamagePerPeg"),
            crit_damage_per_peg=self._orb_number(record, "CritDamagePerPeg"),
            level=self._orb_level(record),
            orb_type=self.determine_orb_type(asset_name),
            rarity_value=self.config.orb_default_rarity_value,
            rarity=self.config.orb_default_rarity,
        )
        if orb.level is None:
            logger.debug("Level field not found for orb {}", orb.id)

        orb.raw_data = sanitize_raw_data(record)
        return orb

    def determine_orb_type(self, asset_name: str) -> str:
        """Keyword scan over the asset name: UTILITY, SPECIAL, else ATTACK."""
        lowered = (asset_name or "").lower()
        if any(keyword in lowered for keyword in self.config.orb_utility_keywords):
            return "UTILITY"
        if any(keyword in lowered for keyword in self.config.orb_special_keywords):
            return "SPECIAL"
        return "ATTACK"

    # Helpers
    def _resolve_name(
        self,
        kind: EntityKind,
        asset_name: str,
        record: RawRecord,
        namespace: str,
        display_fields: Sequence[str],
    ) -> tuple[str, str | None]:
        """Return ``(name, loc_key)`` following the localization-first priority chain."""
        loc_key = to_str(record.get(self.config.name_key_fields.get(kind.value, "locKey")))
        if loc_key:
            translated = self._translate(f"{namespace}/{loc_key}_name")
            if translated:
                return translated, loc_key

        display_name = first_text(record, display_fields)
        if display_name:
            return display_name, loc_key

        loc_path = to_str(record.get(self.config.loc_path_field))
        if loc_path:
            translated = self._translate(f"{namespace}/{loc_path}")
            if translated:
                return translated, loc_key or loc_path

        if asset_name and asset_name.strip():
            return asset_name, loc_key or loc_path
        return f"Unknown {kind.label}", loc_key or loc_path

    def _translate(self, key: str) -> str | None:
        translated = self.localization.get_translation(key, self.config.language)
        if translated and translated.strip():
            return translated
        return None

    def _resolve(self, text: str | None, loc_params: Mapping[str, str] | None) -> str:
        return self.token_resolver.resolve(text or "", loc_params)

    def _description_strings(self, record: RawRecord) -> List[str]:
        keys = string_list(record.get("locDescStrings"))
        if not keys:
            keys = string_list(get_path(record, "ComponentData", "OrbComponent", "locDescStrings"))

        translated: List[str] = []
        for key in keys:
            text = self._translate(f"{self.config.orb_namespace}/{key}")
            if text:
                translated.append(text)
        return translated

    def _orb_value(self, record: RawRecord, field: str) -> Any:
        if field in record:
            return record[field]
        return get_path(record, "ComponentData", "OrbComponent", field)

    def _orb_number(self, record: RawRecord, field: str) -> float | None:
        value = coerce_number(field, self._orb_value(record, field), self.config.integral_suffixes)
        return float(value) if value is not None else None

    def _orb_level(self, record: RawRecord) -> int | None:
        for field in self.config.level_fields:
            level = to_int(self._orb_value(record, field))
            if level is not None:
                return level
        return None

    def _first_number(self, record: RawRecord, fields: Sequence[str]) -> float | None:
        for field in fields:
            value = coerce_number(field, record.get(field), self.config.integral_suffixes)
            if value is not None:
                return float(value)
        return None

    def _enum_name(self, value: Any, names: Mapping[int, str]) -> str | None:
        if isinstance(value, str):
            return value or None
        number = to_int(value)
        if number is None:
            return None
        return names.get(number, str(number))


def aggregate_components(components: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge component field mappings into one record; later components win."""
    merged: Dict[str, Any] = {}
    for component in components:
        if isinstance(component, Mapping):
            merged.update(component)
    return merged


def find_sprite_reference(
    record: RawRecord, field_names: Sequence[str] | None = None
) -> AssetRef | None:
    """Return the first asset handle stored under a sprite-like field name."""
    keywords = [name.lower() for name in (field_names or ExtractionConfig().sprite_field_names)]
    for field, value in record.items():
        if not isinstance(value, AssetRef):
            continue
        lowered = field.lower()
        if any(keyword in lowered for keyword in keywords):
            return value
    return None
