from __future__ import annotations

"""
Multi-factor similarity scoring.

Six independent component metrics are computed per candidate and combined
with static weights:

    category   hierarchy-expanded, depth-weighted Jaccard
    tags       Jaccard over tag ids
    attributes mean Jaccard over shared attribute names
    price      exp(-rate * |p1 - p2| / max(p1, p2))
    brand      1 on (case-insensitive) match, 0.5 neither, 0.1 otherwise
    semantic   |K1 & K2| / (sqrt|K1| * sqrt|K2|) over keyword sets

The weighted sum is NOT normalised: with the default weights (sum 1.4) the
overall score can exceed 1, and the category component alone can exceed 1
because of the depth bonus. Every metric guards its own empty / zero cases and
always returns a number.
"""

import math
from typing import AbstractSet, Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from . import config
from .config import EngineConfig, SimilarityWeights
from .pipeline_types import CandidateScore, ItemFeatures

AncestorLookup = Callable[[int], Sequence[int]]


# =============================================================================
# Category hierarchy
# =============================================================================

class CategoryHierarchy:
    """
    Memoised ancestor lookups for the lifetime of one request.

    Wraps the catalog's ``get_ancestors`` so a category shared by many
    candidates is only resolved once.
    """

    def __init__(self, ancestors: AncestorLookup):
        self._lookup = ancestors
        self._ancestors: Dict[int, Tuple[int, ...]] = {}

    def ancestors(self, category_id: int) -> Tuple[int, ...]:
        category_id = int(category_id)
        if category_id not in self._ancestors:
            self._ancestors[category_id] = tuple(int(a) for a in self._lookup(category_id))
        return self._ancestors[category_id]

    def depth(self, category_id: int) -> int:
        return len(self.ancestors(category_id))

    def expand(self, category_ids: AbstractSet[int]) -> FrozenSet[int]:
        """Each category plus all of its ancestors."""
        out = set()
        for cid in category_ids:
            out.add(int(cid))
            out.update(self.ancestors(cid))
        return frozenset(out)


# =============================================================================
# Component metrics
# =============================================================================

def jaccard_similarity(set1: AbstractSet, set2: AbstractSet) -> float:
    """|A & B| / |A | B|; two empty sets are identical (1.0), one empty is 0.0."""
    if not set1 and not set2:
        return 1.0
    if not set1 or not set2:
        return 0.0
    inter = len(set1 & set2)
    union = len(set1 | set2)
    return inter / union


def category_similarity(
    base_categories: AbstractSet[int],
    candidate_categories: AbstractSet[int],
    hierarchy: CategoryHierarchy,
    depth_bonus: float = config.CATEGORY_DEPTH_BONUS,
) -> float:
    """
    Depth-weighted Jaccard over ancestor-expanded category sets.

    Every shared category contributes ``1 + depth_bonus * depth`` instead of
    1, so sharing a deep leaf counts for more than sharing a root.
    """
    if not base_categories or not candidate_categories:
        return 0.0

    base_tree = hierarchy.expand(base_categories)
    cand_tree = hierarchy.expand(candidate_categories)

    union = base_tree | cand_tree
    if not union:
        return 0.0

    weighted = 0.0
    for cid in base_tree & cand_tree:
        weighted += 1.0 + depth_bonus * hierarchy.depth(cid)
    return weighted / len(union)


def attribute_similarity(
    base_attributes: Mapping[str, AbstractSet[int]],
    candidate_attributes: Mapping[str, AbstractSet[int]],
) -> float:
    """
    Average Jaccard over attribute names the two items share.

    Names only one side has are ignored rather than penalised.
    """
    if not base_attributes and not candidate_attributes:
        return 1.0
    if not base_attributes or not candidate_attributes:
        return 0.0

    total = 0.0
    matched = 0
    for name, base_values in base_attributes.items():
        if name not in candidate_attributes:
            continue
        total += jaccard_similarity(base_values, candidate_attributes[name])
        matched += 1

    return total / matched if matched else 0.0


def price_similarity(
    base_price: float,
    candidate_price: float,
    decay_rate: float = config.PRICE_DECAY_RATE,
) -> float:
    if base_price <= 0 or candidate_price <= 0:
        return 0.0
    relative_diff = abs(base_price - candidate_price) / max(base_price, candidate_price)
    return math.exp(-decay_rate * relative_diff)


def brand_similarity(base_brand: Optional[str], candidate_brand: Optional[str]) -> float:
    base_brand = (base_brand or "").strip()
    candidate_brand = (candidate_brand or "").strip()
    if not base_brand and not candidate_brand:
        return config.BRAND_BOTH_MISSING_SCORE
    if not base_brand or not candidate_brand:
        return config.BRAND_ONE_SIDED_SCORE
    if base_brand.casefold() == candidate_brand.casefold():
        return config.BRAND_MATCH_SCORE
    return config.BRAND_MISMATCH_SCORE


def semantic_similarity(base_keywords: AbstractSet[str], candidate_keywords: AbstractSet[str]) -> float:
    """Cosine over binary keyword vectors (sets, so no term frequency)."""
    if not base_keywords or not candidate_keywords:
        return 0.0
    inter = len(base_keywords & candidate_keywords)
    return inter / (math.sqrt(len(base_keywords)) * math.sqrt(len(candidate_keywords)))


# =============================================================================
# Aggregate
# =============================================================================

def weighted_overall(components: Mapping[str, float], weights: SimilarityWeights) -> float:
    return (
        components["category"] * weights.category
        + components["tags"] * weights.tags
        + components["attributes"] * weights.attributes
        + components["price"] * weights.price
        + components["brand"] * weights.brand
        + components["semantic"] * weights.semantic
    )


def score_candidate(
    item_id: int,
    base: ItemFeatures,
    candidate: ItemFeatures,
    hierarchy: CategoryHierarchy,
    engine_config: Optional[EngineConfig] = None,
) -> CandidateScore:
    cfg = engine_config or EngineConfig()

    components = {
        "category": category_similarity(
            base.categories, candidate.categories, hierarchy, cfg.category_depth_bonus
        ),
        "tags": jaccard_similarity(base.tags, candidate.tags),
        "attributes": attribute_similarity(base.attributes, candidate.attributes),
        "price": price_similarity(base.price, candidate.price, cfg.price_decay_rate),
        "brand": brand_similarity(base.brand, candidate.brand),
        "semantic": semantic_similarity(base.keywords, candidate.keywords),
    }

    return CandidateScore(
        item_id=int(item_id),
        overall_score=weighted_overall(components, cfg.weights),
        category=components["category"],
        tag=components["tags"],
        attribute=components["attributes"],
        price=components["price"],
        brand=components["brand"],
        semantic=components["semantic"],
    )


def rank_candidates(
    base: ItemFeatures,
    candidates: Sequence[Tuple[int, ItemFeatures]],
    hierarchy: CategoryHierarchy,
    engine_config: Optional[EngineConfig] = None,
) -> List[CandidateScore]:
    """
    Score every candidate and sort by overall score descending.

    Ties are broken by item id ascending so output is deterministic.
    """
    scored = [
        score_candidate(iid, base, feats, hierarchy, engine_config)
        for iid, feats in candidates
    ]
    scored.sort(key=lambda s: (-s.overall_score, s.item_id))

    if scored:
        logger.info(
            "rank_candidates: scored {} candidates, top={} ({:.3f})",
            len(scored), scored[0].item_id, scored[0].overall_score,
        )
    return scored
