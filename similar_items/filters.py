from __future__ import annotations

"""
Business rules applied to the ranked candidate list.

A candidate survives when all of the following hold:

- its overall score is at least the configured floor (0.1 by default)
- its title is not a near-duplicate of the base item's title
- it is in stock and publicly visible right now
- every externally supplied rule returns True

Input order is preserved; filtering never re-ranks.
"""

from difflib import SequenceMatcher
from typing import Callable, List, Optional, Sequence

from loguru import logger

from .catalog import Catalog
from .config import EngineConfig
from .pipeline_types import CandidateScore, CatalogItem

BusinessRule = Callable[[CatalogItem, CatalogItem], bool]


def title_similarity(title1: str, title2: str) -> float:
    """
    Matching-substring ratio of two lowercased titles, in [0, 1].

    ``SequenceMatcher`` counts characters in the longest common blocks, so
    it rewards shared runs of text rather than counting edits.
    """
    a = (title1 or "").strip().lower()
    b = (title2 or "").strip().lower()
    # nothing to compare is not a match
    if not a or not b:
        return 0.0
    return SequenceMatcher(None, a, b, autojunk=False).ratio()


def is_near_duplicate(candidate: CatalogItem, base: CatalogItem, threshold: float) -> bool:
    return title_similarity(candidate.name, base.name) > threshold


def apply_business_filters(
    scored: Sequence[CandidateScore],
    base_item: CatalogItem,
    catalog: Catalog,
    engine_config: Optional[EngineConfig] = None,
    rules: Sequence[BusinessRule] = (),
) -> List[CandidateScore]:
    """
    Drop candidates that break a business rule, keeping the input order.

    ``rules`` are evaluated in order after the built-in checks and combined
    with logical AND; the first rule returning False rejects the candidate.
    """
    cfg = engine_config or EngineConfig()
    kept: List[CandidateScore] = []
    dropped = {"score": 0, "missing": 0, "duplicate": 0, "stock": 0, "visibility": 0, "rule": 0}

    for cs in scored:
        if cs.item_id == base_item.item_id:
            continue

        if cs.overall_score < cfg.min_score:
            dropped["score"] += 1
            continue

        candidate = catalog.get_item(cs.item_id)
        if candidate is None:
            logger.warning("Candidate {} vanished from the catalog; skipping", cs.item_id)
            dropped["missing"] += 1
            continue

        if is_near_duplicate(candidate, base_item, cfg.duplicate_title_threshold):
            dropped["duplicate"] += 1
            continue

        if catalog.get_stock_status(cs.item_id) != cfg.in_stock_status:
            dropped["stock"] += 1
            continue

        if catalog.get_visibility(cs.item_id) not in cfg.visible_values:
            dropped["visibility"] += 1
            continue

        if not all(rule(candidate, base_item) for rule in rules):
            dropped["rule"] += 1
            continue

        kept.append(cs)

    logger.info(
        "apply_business_filters: kept {} of {} (dropped {})",
        len(kept), len(scored), {k: v for k, v in dropped.items() if v},
    )
    return kept
