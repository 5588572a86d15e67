"""Entity extraction: normalization, lexicon lookups and heuristics."""

from .extractor import BatchExtraction, EntityExtractor
from .normalization import NormalizationResolver

__all__ = [
    "BatchExtraction",
    "EntityExtractor",
    "NormalizationResolver",
]
