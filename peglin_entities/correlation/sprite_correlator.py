"""Link entities to catalog sprites by name.

Matching is a cascade of strategies tried in order (exact, normalized, fuzzy,
keyword); the first hit wins and fixes the confidence. Outcomes, including misses,
are merged into the correlation cache so repeated runs skip the catalog scan.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Protocol, Sequence

from loguru import logger
from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from peglin_entities.correlation.correlation_cache import Correlation, CorrelationCache
from peglin_entities.extraction.models import AnyEntity, CorrelationMethod
from peglin_entities.sprites.models import SpriteMetadata, SpriteType
from peglin_entities.utils.config import CorrelationConfig

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def normalize_name(name: str | None) -> str:
    """Lower-case and keep only ``[a-z0-9]``."""
    if not name:
        return ""
    return _NON_ALNUM.sub("", name.lower())


def name_similarity(left: str, right: str) -> float:
    """``1 - levenshtein(a, b) / max(len(a), len(b))``; two empty strings score 1.0."""
    return Levenshtein.normalized_similarity(left, right)


def extract_keywords(
    text: str | None, stop_words: Iterable[str] = (), min_length: int = 3
) -> List[str]:
    """Split on non-alphanumerics, dropping short tokens and stop words."""
    if not text:
        return []
    stop = set(stop_words)
    return [
        token
        for token in _TOKEN_SPLIT.split(text.lower())
        if len(token) >= min_length and token not in stop
    ]


def catalog_fingerprint(catalog: Sequence[SpriteMetadata]) -> str:
    """Stable digest of the catalog's sprite ids."""
    digest = hashlib.sha1()
    for sprite_id in sorted(sprite.id for sprite in catalog):
        digest.update(sprite_id.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()


def filter_catalog(
    catalog: Iterable[SpriteMetadata], sprite_type: SpriteType | None
) -> List[SpriteMetadata]:
    if sprite_type is None:
        return list(catalog)
    return [sprite for sprite in catalog if sprite.type == sprite_type]


@dataclass(frozen=True)
class SpriteCandidate:
    """A catalog sprite with its precomputed match keys."""

    sprite: SpriteMetadata
    normalized: str
    keywords: frozenset[str]


@dataclass(frozen=True)
class MatchQuery:
    name: str
    normalized: str
    keywords: frozenset[str]


@dataclass
class MatchResult:
    sprite: SpriteMetadata
    confidence: float
    method: CorrelationMethod
    alternates: List[str] = field(default_factory=list)


class MatchStrategy(Protocol):
    method: CorrelationMethod

    def attempt(
        self, query: MatchQuery, candidates: Sequence[SpriteCandidate]
    ) -> MatchResult | None: ...


class ExactNameMatch:
    """Normalized names equal."""

    method = CorrelationMethod.EXACT

    def __init__(self, confidence: float = 1.0) -> None:
        self.confidence = confidence

    def attempt(
        self, query: MatchQuery, candidates: Sequence[SpriteCandidate]
    ) -> MatchResult | None:
        if not query.normalized:
            return None
        for candidate in candidates:
            if candidate.normalized and candidate.normalized == query.normalized:
                return MatchResult(candidate.sprite, self.confidence, self.method)
        return None


class NormalizedNameMatch:
    """Substring containment either way between normalized names."""

    method = CorrelationMethod.NORMALIZED

    def __init__(self, confidence: float = 0.9) -> None:
        self.confidence = confidence

    @staticmethod
    def variations(normalized: str) -> List[str]:
        """Space/underscore variants; on an already-normalized name they coincide."""
        variants = [
            normalized.replace(" ", "_"),
            normalized.replace("_", " "),
            normalized.replace(" ", ""),
            normalized.replace("_", ""),
        ]
        return list(dict.fromkeys(variant for variant in variants if variant))

    def attempt(
        self, query: MatchQuery, candidates: Sequence[SpriteCandidate]
    ) -> MatchResult | None:
        for variant in self.variations(query.normalized):
            for candidate in candidates:
                sprite_name = candidate.normalized
                if not sprite_name:
                    continue
                if variant in sprite_name or sprite_name in variant:
                    return MatchResult(candidate.sprite, self.confidence, self.method)
        return None


class FuzzyNameMatch:
    """Best Levenshtein similarity at or above the threshold; runners-up become alternates."""

    method = CorrelationMethod.FUZZY

    def __init__(self, threshold: float = 0.7, max_alternates: int = 3) -> None:
        self.threshold = threshold
        self.max_alternates = max_alternates

    def attempt(
        self, query: MatchQuery, candidates: Sequence[SpriteCandidate]
    ) -> MatchResult | None:
        if not query.normalized or not candidates:
            return None

        matches = process.extract(
            query.normalized,
            [candidate.normalized for candidate in candidates],
            scorer=Levenshtein.normalized_similarity,
            processor=None,
            score_cutoff=self.threshold,
            limit=None,
        )
        if not matches:
            return None

        # Highest score first; equal scores keep catalog order.
        ranked = sorted(matches, key=lambda match: (-match[1], match[2]))
        best_index = ranked[0][2]
        alternates = [
            candidates[index].sprite.id for _, _, index in ranked[1 : 1 + self.max_alternates]
        ]
        return MatchResult(
            candidates[best_index].sprite,
            float(ranked[0][1]),
            self.method,
            alternates,
        )


class KeywordMatch:
    """First sprite sharing a keyword with the entity name."""

    method = CorrelationMethod.KEYWORD

    def __init__(self, confidence: float = 0.6) -> None:
        self.confidence = confidence

    def attempt(
        self, query: MatchQuery, candidates: Sequence[SpriteCandidate]
    ) -> MatchResult | None:
        if not query.keywords:
            return None
        for candidate in candidates:
            if query.keywords & candidate.keywords:
                return MatchResult(candidate.sprite, self.confidence, self.method)
        return None


def default_strategies(config: CorrelationConfig) -> List[MatchStrategy]:
    return [
        ExactNameMatch(config.exact_confidence),
        NormalizedNameMatch(config.normalized_confidence),
        FuzzyNameMatch(config.fuzzy_threshold, config.max_alternates),
        KeywordMatch(config.keyword_confidence),
    ]


def _type_label(entity_type: str | Enum) -> str:
    return str(entity_type.value) if isinstance(entity_type, Enum) else str(entity_type)


class SpriteCorrelator:
    """Correlate entities with a sprite catalog through an ordered strategy cascade."""

    def __init__(
        self,
        config: CorrelationConfig | None = None,
        cache: CorrelationCache | None = None,
        strategies: Sequence[MatchStrategy] | None = None,
    ) -> None:
        self.config = config or CorrelationConfig()
        self.cache = cache if cache is not None else CorrelationCache(config=self.config)
        self.strategies: List[MatchStrategy] = list(
            strategies if strategies is not None else default_strategies(self.config)
        )

    def keywords(self, text: str | None) -> frozenset[str]:
        return frozenset(
            extract_keywords(text, self.config.stop_words, self.config.keyword_min_length)
        )

    def candidates(self, catalog: Sequence[SpriteMetadata]) -> List[SpriteCandidate]:
        return [
            SpriteCandidate(
                sprite=sprite,
                normalized=normalize_name(sprite.name),
                keywords=self.keywords(sprite.name),
            )
            for sprite in catalog
        ]

    def correlate(
        self,
        entity_id: str,
        entity_name: str,
        entity_type: str | Enum,
        catalog: Sequence[SpriteMetadata],
        *,
        use_cache: bool = True,
    ) -> Correlation:
        """Return the correlation for one entity; misses yield method ``none``.

        With ``use_cache=False`` the cascade always runs and the outcome is not merged
        into the cache.
        """
        type_label = _type_label(entity_type)
        fingerprint = catalog_fingerprint(catalog)

        cached = self._cached(type_label, entity_id, catalog, fingerprint) if use_cache else None
        if cached is not None:
            logger.debug("Correlation cache hit: {}", cached.summary())
            return cached

        try:
            result = self._match(entity_name, self.candidates(catalog))
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Correlation failed for {}:{}: {}", type_label, entity_id, exc, entity=entity_name
            )
            result = None

        if result is None:
            correlation = Correlation(
                entity_id=entity_id,
                entity_name=entity_name,
                entity_type=type_label,
                confidence=0.0,
                method=CorrelationMethod.NONE,
                catalog_fingerprint=fingerprint,
            )
            logger.info("No sprite match found for {}: {}", type_label, entity_name)
        else:
            correlation = Correlation(
                entity_id=entity_id,
                entity_name=entity_name,
                entity_type=type_label,
                correlated_sprite_id=result.sprite.id,
                sprite_file_path=result.sprite.file_path,
                confidence=result.confidence,
                method=result.method,
                alternate_sprite_ids=result.alternates,
            )
            logger.debug("Correlated {}", correlation.summary())

        if use_cache:
            self.cache.merge([correlation])
        return correlation

    def correlate_entities(
        self, entities: Iterable[AnyEntity], catalog: Sequence[SpriteMetadata]
    ) -> Dict[str, Correlation]:
        """Correlate each entity against same-type sprites and annotate it in place.

        Returns correlations keyed by ``"{entity_type}:{entity_id}"``.
        """
        by_type: Dict[SpriteType, List[SpriteMetadata]] = {}
        correlations: Dict[str, Correlation] = {}

        for entity in entities:
            if not entity.name:
                logger.info("Skipping {} with empty name: {}", entity.kind.value, entity.id)
                continue

            sprite_type = SpriteType(entity.kind.value)
            if sprite_type not in by_type:
                by_type[sprite_type] = filter_catalog(catalog, sprite_type)

            correlation = self.correlate(entity.id, entity.name, entity.kind, by_type[sprite_type])
            entity.link_sprite(
                correlation.correlated_sprite_id,
                correlation.sprite_file_path,
                correlation.confidence,
                correlation.method,
                correlation.alternate_sprite_ids,
            )
            correlations[correlation.cache_key] = correlation

        matched = sum(1 for c in correlations.values() if c.method != CorrelationMethod.NONE)
        logger.info("Correlated {}/{} entities with sprites", matched, len(correlations))
        return correlations

    @staticmethod
    def uncorrelated_sprites(
        correlations: Iterable[Correlation], catalog: Iterable[SpriteMetadata]
    ) -> List[SpriteMetadata]:
        """Catalog sprites no correlation points at, ordered by type then name."""
        used = {c.correlated_sprite_id for c in correlations if c.correlated_sprite_id}
        leftovers = [sprite for sprite in catalog if sprite.id not in used]
        return sorted(
            leftovers,
            key=lambda sprite: (sprite.type.value if sprite.type else "", sprite.name),
        )

    # Helpers
    def _cached(
        self,
        entity_type: str,
        entity_id: str,
        catalog: Sequence[SpriteMetadata],
        fingerprint: str,
    ) -> Correlation | None:
        cached = self.cache.get(entity_type, entity_id)
        if cached is None:
            return None
        if cached.correlated_sprite_id:
            if any(sprite.id == cached.correlated_sprite_id for sprite in catalog):
                return cached
            return None
        if cached.method == CorrelationMethod.NONE and cached.catalog_fingerprint == fingerprint:
            return cached
        return None

    def _match(
        self, entity_name: str, candidates: Sequence[SpriteCandidate]
    ) -> MatchResult | None:
        query = MatchQuery(
            name=entity_name,
            normalized=normalize_name(entity_name),
            keywords=self.keywords(entity_name),
        )
        for strategy in self.strategies:
            result = strategy.attempt(query, candidates)
            if result is not None:
                return result
        return None
