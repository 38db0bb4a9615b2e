from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator


# ---------------------------
# Paths
# ---------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
CATALOG_SNAPSHOT_PATH = Path(
    os.getenv("SIMILAR_ITEMS_CATALOG_PATH", str(DATA_DIR / "catalog_snapshot.parquet"))
)
CATEGORY_TREE_PATH = DATA_DIR / "category_tree.parquet"


# ---------------------------
# Similarity weights
# ---------------------------

# NOTE: these sum to 1.4, so overall scores are not bounded to [0, 1].
# MIN_SIMILARITY_SCORE below is calibrated against this raw scale.
WEIGHT_CATEGORY = 0.40
WEIGHT_TAGS = 0.20
WEIGHT_ATTRIBUTES = 0.25
WEIGHT_PRICE = 0.10
WEIGHT_BRAND = 0.15
WEIGHT_SEMANTIC = 0.30

CATEGORY_DEPTH_BONUS = 0.5   # each ancestor level adds this much to a shared category
PRICE_DECAY_RATE = 2.0       # exp(-rate * relative_diff)

BRAND_MATCH_SCORE = 1.0
BRAND_MISMATCH_SCORE = 0.1  # two different brands rank like a one-sided brand
BRAND_ONE_SIDED_SCORE = 0.1
BRAND_BOTH_MISSING_SCORE = 0.5


# ---------------------------
# Candidate retrieval
# ---------------------------

CANDIDATE_MULTIPLIER = 3
PRICE_RANGE_LOW = 0.5
PRICE_RANGE_HIGH = 2.0


# ---------------------------
# Business rules
# ---------------------------

MIN_SIMILARITY_SCORE = 0.1
DUPLICATE_TITLE_THRESHOLD = 0.95

IN_STOCK_STATUS = "instock"
VISIBLE_VALUES: Tuple[str, ...] = ("catalog", "visible")

ELIGIBLE_ITEM_TYPES: Tuple[str, ...] = ("simple", "variable")
PUBLISH_STATUS = "publish"


# ---------------------------
# Result size policy
# ---------------------------

LIMIT_MIN = 1
LIMIT_MAX = 20
DEFAULT_LIMIT = 4


# ---------------------------
# Cache & concurrency
# ---------------------------

DEFAULT_CACHE_TTL = int(os.getenv("SIMILAR_ITEMS_CACHE_TTL", "3600"))
MAX_WORKERS = int(os.getenv("SIMILAR_ITEMS_MAX_WORKERS", "1"))


# ---------------------------
# Text processing
# ---------------------------

MAX_INPUT_CHARS = 20_000
MIN_KEYWORD_LENGTH = 3

STOP_WORDS: Tuple[str, ...] = (
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
)


# ---------------------------
# Price bands (upper bounds, exclusive)
# ---------------------------

PRICE_BAND_THRESHOLDS: Dict[str, float] = {
    "budget": 25.0,
    "mid": 100.0,
    "premium": 500.0,
}


# ---------------------------
# Trending / popular selections
# ---------------------------

TRENDING_MIN_RATING = 4.5
HIGHLIGHT_SIZE = 3


# ---------------------------
# Pydantic models shared around the app
# ---------------------------

class SimilarityWeights(BaseModel):
    """
    Static weight per similarity component.

    Weights are used as-is (no normalisation); see the note above
    WEIGHT_CATEGORY.
    """

    category: float = Field(default=WEIGHT_CATEGORY, ge=0)
    tags: float = Field(default=WEIGHT_TAGS, ge=0)
    attributes: float = Field(default=WEIGHT_ATTRIBUTES, ge=0)
    price: float = Field(default=WEIGHT_PRICE, ge=0)
    brand: float = Field(default=WEIGHT_BRAND, ge=0)
    semantic: float = Field(default=WEIGHT_SEMANTIC, ge=0)

    model_config = {"frozen": True}

    def total(self) -> float:
        return self.category + self.tags + self.attributes + self.price + self.brand + self.semantic


class EngineConfig(BaseModel):
    """
    Everything the recommender needs to know that is not catalog data.

    Built once and handed to the engine; nothing in the pipeline reads the
    module-level constants directly.
    """

    weights: SimilarityWeights = Field(default_factory=SimilarityWeights)

    min_score: float = Field(default=MIN_SIMILARITY_SCORE, ge=0)
    duplicate_title_threshold: float = Field(default=DUPLICATE_TITLE_THRESHOLD, ge=0, le=1)
    category_depth_bonus: float = Field(default=CATEGORY_DEPTH_BONUS, ge=0)
    price_decay_rate: float = Field(default=PRICE_DECAY_RATE, gt=0)

    candidate_multiplier: int = Field(default=CANDIDATE_MULTIPLIER, ge=1)
    price_range_low: float = Field(default=PRICE_RANGE_LOW, ge=0)
    price_range_high: float = Field(default=PRICE_RANGE_HIGH, gt=0)

    limit_min: int = Field(default=LIMIT_MIN, ge=1)
    limit_max: int = Field(default=LIMIT_MAX, ge=1)
    default_limit: int = Field(default=DEFAULT_LIMIT, ge=1)

    cache_ttl: float = Field(default=DEFAULT_CACHE_TTL, gt=0)
    max_workers: int = Field(default=MAX_WORKERS, ge=1)

    eligible_item_types: Tuple[str, ...] = ELIGIBLE_ITEM_TYPES
    publish_status: str = PUBLISH_STATUS
    in_stock_status: str = IN_STOCK_STATUS
    visible_values: Tuple[str, ...] = VISIBLE_VALUES

    stop_words: Tuple[str, ...] = STOP_WORDS
    min_keyword_length: int = Field(default=MIN_KEYWORD_LENGTH, ge=1)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_ranges(self) -> "EngineConfig":
        if self.limit_min > self.limit_max:
            raise ValueError("limit_min must not exceed limit_max")
        if not self.limit_min <= self.default_limit <= self.limit_max:
            raise ValueError("default_limit must lie within [limit_min, limit_max]")
        if self.price_range_low > self.price_range_high:
            raise ValueError("price_range_low must not exceed price_range_high")
        return self

    def clamp_limit(self, limit: Optional[int]) -> int:
        """Clamp a requested result count into [limit_min, limit_max]."""
        if limit is None:
            return self.default_limit
        return max(self.limit_min, min(self.limit_max, int(limit)))


class SimilarityScores(BaseModel):
    """Per-component breakdown, rounded for display."""

    overall: float
    category: float
    tags: float
    attributes: float
    price: float
    brand: float
    semantic: float


class SimilarItem(BaseModel):
    """
    A single recommended item as exposed to presentation layers.
    """

    item_id: int
    overall_score: float
    similarity_scores: Optional[SimilarityScores] = None


class SimilarItemsResponse(BaseModel):
    """
    Response body for GET /products/{item_id}/similar.
    """

    item_id: int
    similar_items: List[SimilarItem]


class HealthResponse(BaseModel):
    """
    Response body for GET /health.
    """

    status: str
