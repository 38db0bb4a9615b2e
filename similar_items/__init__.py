"""
Top-level package for the similar-items recommender.

Given a catalog item, the engine combines six weighted similarity signals
(category hierarchy, tags, attributes, price, brand and keywords) into a
ranked list of similar items, applies business rules and caches the result.
Catalog data is read through the ``Catalog`` protocol; a pandas-backed
implementation over a normalized snapshot ships with the package. There are
no side-effects on import.
"""

from .cache import ResultCache
from .catalog import (
    Catalog,
    CatalogDataError,
    CatalogError,
    CatalogUnavailableError,
    DataFrameCatalog,
)
from .config import EngineConfig, SimilarityWeights
from .engine import SimilarItemsEngine
from .pipeline_types import CandidateQuery, CandidateScore, CatalogItem, ItemFeatures, PriceBand

__all__ = [
    "Catalog",
    "CatalogDataError",
    "CatalogError",
    "CatalogUnavailableError",
    "CandidateQuery",
    "CandidateScore",
    "CatalogItem",
    "DataFrameCatalog",
    "EngineConfig",
    "ItemFeatures",
    "PriceBand",
    "ResultCache",
    "SimilarItemsEngine",
    "SimilarityWeights",
]
