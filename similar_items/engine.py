from __future__ import annotations

"""
Similar-items engine.

- Validates the base item against configured type/status (invalid -> [])
- Serves (item_id, limit) from the result cache when possible
- Otherwise: features -> candidates (limit * multiplier) -> score -> filter
  -> top `limit` -> cache write-through
- Catalog failures propagate as CatalogError; they are never turned into an
  empty result
"""

import numbers
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from .cache import ResultCache
from .catalog import Catalog
from .config import EngineConfig
from .features import extract_features
from .filters import BusinessRule, apply_business_filters
from .pipeline_types import CandidateScore, CatalogItem, ItemFeatures
from .retrieval import find_candidates
from .scoring import CategoryHierarchy, rank_candidates


class SimilarItemsEngine:
    def __init__(
        self,
        catalog: Catalog,
        engine_config: Optional[EngineConfig] = None,
        cache: Optional[ResultCache] = None,
        rules: Sequence[BusinessRule] = (),
    ):
        self.catalog = catalog
        self.config = engine_config or EngineConfig()
        self.cache = cache if cache is not None else ResultCache(default_ttl=self.config.cache_ttl)
        self.rules: Tuple[BusinessRule, ...] = tuple(rules)

    # -----------------------
    # Validation
    # -----------------------

    def _load_base_item(self, item_id) -> Optional[CatalogItem]:
        if isinstance(item_id, bool) or not isinstance(item_id, numbers.Integral) or item_id <= 0:
            logger.debug("Rejecting base item id {!r}: not a positive integer", item_id)
            return None

        item = self.catalog.get_item(item_id)
        if item is None:
            logger.debug("Base item {} not found", item_id)
            return None
        if item.item_type not in self.config.eligible_item_types:
            logger.debug("Base item {} has ineligible type '{}'", item_id, item.item_type)
            return None
        if item.status != self.config.publish_status:
            logger.debug("Base item {} has status '{}'", item_id, item.status)
            return None
        return item

    # -----------------------
    # Feature fan-out
    # -----------------------

    def _candidate_features(self, candidate_ids: List[int]) -> List[Tuple[int, ItemFeatures]]:
        def load(iid: int) -> Optional[Tuple[int, ItemFeatures]]:
            item = self.catalog.get_item(iid)
            if item is None:
                logger.warning("Candidate {} disappeared before scoring; skipping", iid)
                return None
            return iid, extract_features(item, self.catalog, self.config)

        if self.config.max_workers > 1 and len(candidate_ids) > 1:
            workers = min(self.config.max_workers, len(candidate_ids))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="similar-items") as pool:
                loaded = list(pool.map(load, candidate_ids))
        else:
            loaded = [load(iid) for iid in candidate_ids]

        return [pair for pair in loaded if pair is not None]

    # -----------------------
    # Public API
    # -----------------------

    def get_similar_items(self, item_id: int, limit: Optional[int] = None) -> List[CandidateScore]:
        """
        Ranked similar items for ``item_id``, at most ``limit`` of them.

        ``limit`` is clamped into the configured range. An unknown or
        ineligible base item yields an empty list.
        """
        base_item = self._load_base_item(item_id)
        if base_item is None:
            return []

        limit = self.config.clamp_limit(limit)

        cached = self.cache.get(base_item.item_id, limit)
        if cached is not None:
            logger.info("get_similar_items: cache hit for item={} limit={}", base_item.item_id, limit)
            return list(cached)

        base_features = extract_features(base_item, self.catalog, self.config)
        candidate_ids = find_candidates(
            base_item.item_id,
            base_features,
            limit * self.config.candidate_multiplier,
            self.catalog,
            self.config,
        )

        candidates = self._candidate_features(candidate_ids)
        hierarchy = CategoryHierarchy(self.catalog.get_ancestors)
        ranked = rank_candidates(base_features, candidates, hierarchy, self.config)

        filtered = apply_business_filters(ranked, base_item, self.catalog, self.config, self.rules)
        results = filtered[:limit]

        self.cache.set(base_item.item_id, limit, results)
        logger.info(
            "get_similar_items: item={} limit={} candidates={} ranked={} kept={} returned={}",
            base_item.item_id, limit, len(candidate_ids), len(ranked), len(filtered), len(results),
        )
        return list(results)
