"""Configuration management using Pydantic for validation."""

from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClassificationConfig(BaseSettings):
    """Signature tables used to decide which entity kind a record represents."""

    model_config = SettingsConfigDict(env_prefix="PEGLIN_CLASSIFICATION_", case_sensitive=False)

    relic_fields: List[str] = ["locKey", "englishDisplayName", "effect", "globalRarity", "sprite"]
    relic_min_fields: int = 3

    enemy_fields: List[str] = [
        "CurrentHealth",
        "StartingHealth",
        "DamagePerMeleeAttack",
        "AttackRange",
        "enemyTypes",
        "MaxHealth",
        "MaxHealthCruciball",
        "MeleeAttackDamage",
        "RangedAttackDamage",
        "location",
        "Type",
    ]
    enemy_min_fields: int = 2
    enemy_loc_key_field: str = "LocKey"
    enemy_keywords: List[str] = [
        "enemy",
        "boss",
        "slime",
        "ballista",
        "dragon",
        "demon",
        "sapper",
        "knight",
        "archer",
    ]
    enemy_keyword_bonus: int = 2

    orb_fields: List[str] = ["locNameString", "locName", "DamagePerPeg", "CritDamagePerPeg", "Level"]
    orb_min_fields: int = 3
    orb_strong_fields: int = 4
    orb_attack_fields: List[str] = [
        "shotPrefab",
        "_shotPrefab",
        "_thunderPrefab",
        "_criticalShotPrefab",
        "_criticalThunderPrefab",
        "targetColumn",
        "verticalAttack",
        "targetingType",
    ]
    orb_script_field: str = "m_Script"

    pachinko_fields: List[str] = [
        "_renderer",
        "FireForce",
        "GravityScale",
        "MaxBounceCount",
        "MultiballForceMod",
    ]
    pachinko_required_field: str = "_renderer"
    pachinko_min_fields: int = 3

    game_object_exclusions: List[str] = [
        "ui",
        "canvas",
        "text",
        "button",
        "panel",
        "scroll",
        "image",
        "background",
        "camera",
        "light",
    ]
    game_object_orb_fields: List[str] = [
        "DamagePerPeg",
        "CritDamagePerPeg",
        "Level",
        "locNameString",
        "locDescStrings",
    ]
    game_object_min_orb_fields: int = 3
    orb_component_types: List[str] = ["OrbComponent", "AttackComponent", "PachinkoBallComponent"]

    kind_order: List[str] = ["relic", "enemy", "orb"]


class ExtractionConfig(BaseSettings):
    """Entity extraction configuration."""

    model_config = SettingsConfigDict(env_prefix="PEGLIN_EXTRACTION_", case_sensitive=False)

    relic_namespace: str = "Relics"
    enemy_namespace: str = "Enemies"
    orb_namespace: str = "Orbs"
    language: str = "English"
    localization_path: str | None = None

    name_key_fields: Dict[str, str] = {
        "relic": "locKey",
        "enemy": "locKey",
        "orb": "locNameString",
    }
    loc_path_field: str = "LocKey"
    display_name_fields: List[str] = ["englishDisplayName", "EnglishDisplayName", "enemyName"]
    orb_display_name_fields: List[str] = ["locName"]
    description_fields: List[str] = ["englishDescription", "EnglishDescription", "description"]
    level_fields: List[str] = ["Level", "level", "orbLevel", "OrbLevel"]
    integral_suffixes: List[str] = ["Level", "Count"]

    rarity_names: Dict[int, str] = {0: "COMMON", 1: "UNCOMMON", 2: "RARE", 3: "BOSS"}
    unknown_rarity: str = "UNKNOWN"
    orb_default_rarity_value: int = 1
    orb_default_rarity: str = "COMMON"

    location_names: Dict[int, str] = {
        0: "STARTING_AREA",
        1: "FOREST",
        2: "MINES",
        3: "DESERT",
        4: "CASTLE",
        5: "CAVERNS",
        6: "SWAMP",
        7: "MOUNTAIN",
        8: "FINAL_AREA",
    }
    enemy_type_names: Dict[int, str] = {0: "NORMAL", 1: "MINIBOSS", 2: "BOSS"}

    orb_utility_keywords: List[str] = ["heal", "support"]
    orb_special_keywords: List[str] = ["special", "unique"]

    sprite_field_names: List[str] = [
        "sprite",
        "icon",
        "image",
        "texture",
        "picture",
        "graphic",
        "avatar",
    ]


class SpriteGeometryConfig(BaseSettings):
    """Thresholds for sprite-sheet and atlas frame inference.

    The strip/grid bounds and the 3x3 last-cell rule were tuned by eye against the
    game's own sheets and are kept configurable rather than assumed to generalize.
    """

    model_config = SettingsConfigDict(env_prefix="PEGLIN_SPRITES_", case_sensitive=False)

    candidate_frame_sizes: List[int] = [16, 24, 32, 48, 64, 80, 96, 128]
    max_detect_dimension: int = 512
    min_detect_dimension: int = 32

    packed_sprite_max_size: int = 64
    packed_sprite_keywords: List[str] = ["orb", "relic", "enemy"]

    single_sprite_keywords: List[str] = [
        "boulder",
        "background",
        "bg_",
        "ui_",
        "button",
        "panel",
        "menu",
        "cursor",
        "border",
        "banner",
        "logo",
        "portrait",
        "sword",
        "shield",
        "armor",
        "helmet",
        "dagger",
        "hammer",
        "potion",
        "chest",
    ]

    strip_min_frames: int = 3
    strip_max_frames: int = 16

    grid_min_frames: int = 4
    grid_max_frames: int = 25
    grid_min_side: int = 2
    grid_max_side: int = 5

    factor_min_frame_size: int = 16
    factor_max_frame_size: int = 128
    factor_min_frames: int = 4
    factor_max_frames: int = 50
    factor_min_side: int = 2

    drop_last_cell_of_3x3: bool = True
    default_pivot: float = 0.5


class CorrelationConfig(BaseSettings):
    """Entity to sprite correlation configuration."""

    model_config = SettingsConfigDict(env_prefix="PEGLIN_CORRELATION_", case_sensitive=False)

    exact_confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    normalized_confidence: float = Field(default=0.9, ge=0.0, le=1.0)
    fuzzy_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    keyword_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    keyword_min_length: int = 3
    stop_words: List[str] = [
        "the",
        "of",
        "a",
        "an",
        "and",
        "or",
        "but",
        "in",
        "on",
        "at",
        "to",
        "for",
        "with",
        "by",
    ]
    max_alternates: int = 3
    cache_path: str = "data/correlations/entity-sprite-correlations.json"


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="PEGLIN_LOGGING_", case_sensitive=False)

    level: str = "INFO"
    file: str | None = "logs/peglin_entities.log"
    rotation: str = "10 MB"
    retention: int = 3

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        valid_levels = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level '{v}'. Must be one of {sorted(valid_levels)}.")
        return upper


class Config(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_prefix="PEGLIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    # Configuration sections
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    sprites: SpriteGeometryConfig = Field(default_factory=SpriteGeometryConfig)
    correlation: CorrelationConfig = Field(default_factory=CorrelationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Data paths
    extracted_data_path: Path = Field(default=Path("extracted-data"))

    @staticmethod
    def _sections() -> Dict[str, type[BaseSettings]]:
        return {
            "classification": ClassificationConfig,
            "extraction": ExtractionConfig,
            "sprites": SpriteGeometryConfig,
            "correlation": CorrelationConfig,
            "logging": LoggingConfig,
        }

    @staticmethod
    def _deep_merge_dict(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge two dicts (overrides win).

        This is used to apply environment-derived overrides on top of YAML defaults.
        """
        merged: Dict[str, Any] = dict(base)
        for key, value in overrides.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge_dict(merged[key], value)
            else:
                merged[key] = value
        return merged

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = "config/config.yaml") -> "Config":
        """Load configuration from YAML file and environment variables.

        Precedence (highest to lowest):
        1) Environment variables / .env
        2) YAML file
        3) Model defaults

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML file is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError(f"YAML config root must be a mapping/dict: {yaml_path}")

        # Only non-default values coming from env/.env are layered over the YAML.
        env_overrides = cls().model_dump(exclude_defaults=True)

        # Section-prefixed vars (e.g. PEGLIN_CORRELATION_FUZZY_THRESHOLD) are read by the
        # section's own default instance, so the root dump above never sees them.
        for section, settings_cls in cls._sections().items():
            section_overrides = settings_cls().model_dump(exclude_defaults=True)
            if section_overrides:
                env_overrides[section] = cls._deep_merge_dict(
                    section_overrides, env_overrides.get(section, {})
                )

        merged = cls._deep_merge_dict(yaml_config, env_overrides)

        return cls(**merged)

    def validate_config(self) -> None:
        """Validate configuration settings.

        Raises:
            ValueError: If configuration is invalid
        """
        correlation = self.correlation
        if correlation.keyword_min_length < 1:
            raise ValueError("correlation.keyword_min_length must be at least 1")

        sprites = self.sprites
        if not sprites.candidate_frame_sizes:
            raise ValueError("sprites.candidate_frame_sizes cannot be empty")
        bounds = [
            ("min_detect_dimension", "max_detect_dimension"),
            ("strip_min_frames", "strip_max_frames"),
            ("grid_min_frames", "grid_max_frames"),
            ("grid_min_side", "grid_max_side"),
            ("factor_min_frame_size", "factor_max_frame_size"),
            ("factor_min_frames", "factor_max_frames"),
        ]
        for low_name, high_name in bounds:
            low, high = getattr(sprites, low_name), getattr(sprites, high_name)
            if low > high:
                raise ValueError(f"sprites.{low_name} ({low}) exceeds sprites.{high_name} ({high})")

        cache_path = Path(correlation.cache_path)
        cache_path.parent.mkdir(parents=True, exist_ok=True)


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get or create global configuration instance.

    Returns:
        Global Config instance

    Raises:
        RuntimeError: If configuration hasn't been initialized
    """
    global _config
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call load_config() first.")
    return _config


def load_config(yaml_path: str | Path = "config/config.yaml") -> Config:
    """Load and validate configuration.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        Loaded and validated Config instance
    """
    global _config
    _config = Config.from_yaml(yaml_path)
    _config.validate_config()
    return _config


def reset_config() -> None:
    """Reset global configuration (mainly for testing)."""
    global _config
    _config = None
