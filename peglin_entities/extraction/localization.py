"""Localization lookups and placeholder substitution for entity text."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from loguru import logger

DEFAULT_LANGUAGE = "English"


class TokenResolver:
    """Substitute ``{KEY}`` and ``{[KEY]}`` placeholders from a parameter table.

    Replacement is literal and single-pass: substituted values are not scanned for
    further placeholders and there is no escaping.
    """

    def resolve(self, text: str | None, parameters: Mapping[str, str] | None) -> str:
        if not text or not parameters:
            return text or ""

        result = text
        for key, value in parameters.items():
            result = result.replace(f"{{{key}}}", value)
            result = result.replace(f"{{[{key}]}}", value)

        if result != text:
            logger.debug("Resolved tokens: '{}' -> '{}'", text, result)
        return result

    def resolve_all(
        self, texts: Iterable[str], parameters: Mapping[str, str] | None
    ) -> List[str]:
        return [self.resolve(text, parameters) for text in texts]


class LocalizationTable:
    """In-memory translation store keyed by term path (e.g. ``Relics/orbelisk_name``)."""

    def __init__(self, terms: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self._terms: Dict[str, Dict[str, str]] = {
            key: dict(translations) for key, translations in (terms or {}).items()
        }

    @classmethod
    def from_mapping(
        cls, terms: Mapping[str, Any], language: str = DEFAULT_LANGUAGE
    ) -> LocalizationTable:
        """Build a table from ``{key: text}`` or ``{key: {language: text}}``."""
        normalized: Dict[str, Dict[str, str]] = {}
        for key, value in terms.items():
            if isinstance(value, Mapping):
                normalized[key] = {str(lang): str(text) for lang, text in value.items()}
            elif value is not None:
                normalized[key] = {language: str(value)}
        return cls(normalized)

    @classmethod
    def from_json(cls, path: str | Path, language: str = DEFAULT_LANGUAGE) -> LocalizationTable:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Localization JSON not found: {path}")

        payload = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError(f"Localization JSON root must be an object: {path}")

        table = cls.from_mapping(payload, language=language)
        logger.info("Loaded {} localization terms from {}", len(table), path)
        return table

    @classmethod
    def from_csv(cls, path: str | Path) -> LocalizationTable:
        """Load an I2-style export: a ``Key`` column followed by one column per language."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Localization CSV not found: {path}")

        terms: Dict[str, Dict[str, str]] = {}
        with path.open("r", newline="", encoding="utf-8") as handle:
            reader = csv.DictReader(handle)
            metadata_columns = {"Key", "Type", "Desc"}
            for row in reader:
                key = (row.get("Key") or "").strip()
                if not key:
                    continue
                terms[key] = {
                    language: text
                    for language, text in row.items()
                    if language and language not in metadata_columns and text
                }

        table = cls(terms)
        logger.info("Loaded {} localization terms from {}", len(table), path)
        return table

    def get_translation(self, key: str, language: str = DEFAULT_LANGUAGE) -> str | None:
        translations = self._terms.get(key)
        if not translations:
            return None
        return translations.get(language)

    def has_key(self, key: str) -> bool:
        return key in self._terms

    def find_keys_containing(self, fragment: str) -> List[str]:
        lowered = fragment.lower()
        return sorted(key for key in self._terms if lowered in key.lower())

    def languages(self) -> List[str]:
        found = {language for translations in self._terms.values() for language in translations}
        return sorted(found)

    def __len__(self) -> int:
        return len(self._terms)


def extract_localization_params(component_data: Mapping[str, Any]) -> Dict[str, str] | None:
    """Read the ``_Params`` list of a LocalizationParamsManager component.

    Items are mappings carrying either ``Name``/``Value`` or ``key``/``value``.
    Returns ``None`` when no usable parameter is found.
    """
    params = component_data.get("_Params") if isinstance(component_data, Mapping) else None
    if not isinstance(params, (list, tuple)) or not params:
        return None

    parameters: Dict[str, str] = {}
    for item in params:
        if not isinstance(item, Mapping):
            logger.debug("Skipping unrecognised localization param of type {}", type(item).__name__)
            continue

        key = item.get("Name", item.get("key"))
        value = item.get("Value", item.get("value"))
        if key and value is not None:
            parameters[str(key)] = str(value)

    logger.debug("Extracted {} localization parameters", len(parameters))
    return parameters or None
