from __future__ import annotations

"""
Candidate retrieval for the similar-items recommender.

Coarse, recall-oriented lookup: an item is a candidate if it shares a direct
category with the base item OR sits in the base item's price window. Both
signals are optional; with neither we fall back to the hard filters alone
(eligible type, published, in stock, visible) and return a broad set.

Ordering of the returned ids is whatever the catalog yields; the scorer
imposes the final order.
"""

from typing import List, Optional

from loguru import logger

from .catalog import Catalog
from .config import EngineConfig
from .pipeline_types import CandidateQuery, ItemFeatures


def build_candidate_query(
    base_item_id: int,
    features: ItemFeatures,
    max_candidates: int,
    engine_config: Optional[EngineConfig] = None,
) -> CandidateQuery:
    cfg = engine_config or EngineConfig()

    price_min = price_max = None
    if features.price > 0:
        price_min = features.price * cfg.price_range_low
        price_max = features.price * cfg.price_range_high

    return CandidateQuery(
        exclude_id=int(base_item_id),
        limit=int(max_candidates),
        category_ids=frozenset(features.categories),
        price_min=price_min,
        price_max=price_max,
        item_types=tuple(cfg.eligible_item_types),
        status=cfg.publish_status,
        stock_status=cfg.in_stock_status,
        visibilities=tuple(cfg.visible_values),
    )


def find_candidates(
    base_item_id: int,
    features: ItemFeatures,
    max_candidates: int,
    catalog: Catalog,
    engine_config: Optional[EngineConfig] = None,
) -> List[int]:
    """
    Returns up to ``max_candidates`` distinct item ids, never ``base_item_id``.
    """
    if max_candidates <= 0:
        return []

    query = build_candidate_query(base_item_id, features, max_candidates, engine_config)
    if not query.has_signal:
        logger.info(
            "find_candidates: item {} has no category or price signal; using type/status filters only",
            base_item_id,
        )

    raw_ids = catalog.find_items_by_category_or_price_range(query)

    # The catalog is trusted for the predicate but not for the exclusions.
    out: List[int] = []
    seen = {int(base_item_id)}
    for iid in raw_ids:
        iid = int(iid)
        if iid in seen:
            continue
        seen.add(iid)
        out.append(iid)
        if len(out) >= max_candidates:
            break

    logger.info(
        "find_candidates: base={} cats={} price_window={} -> {} candidates",
        base_item_id,
        len(query.category_ids),
        (query.price_min, query.price_max) if query.price_min is not None else None,
        len(out),
    )
    return out
