"""Entity to sprite correlation."""

from peglin_entities.correlation.correlation_cache import (
    Correlation,
    CorrelationCache,
    CorrelationCacheState,
)
from peglin_entities.correlation.sprite_correlator import (
    ExactNameMatch,
    FuzzyNameMatch,
    KeywordMatch,
    MatchResult,
    MatchStrategy,
    NormalizedNameMatch,
    SpriteCorrelator,
    catalog_fingerprint,
    extract_keywords,
    filter_catalog,
    name_similarity,
    normalize_name,
)

__all__ = [
    "Correlation",
    "CorrelationCache",
    "CorrelationCacheState",
    "ExactNameMatch",
    "FuzzyNameMatch",
    "KeywordMatch",
    "MatchResult",
    "MatchStrategy",
    "NormalizedNameMatch",
    "SpriteCorrelator",
    "catalog_fingerprint",
    "extract_keywords",
    "filter_catalog",
    "name_similarity",
    "normalize_name",
]
