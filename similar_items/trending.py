from __future__ import annotations

"""
Storefront highlight selections that sit next to "similar items": trending
(highly rated, shuffled) and popular (most sold).

Both only pick from items a shopper could actually buy: published, of an
eligible type, in stock and visible (see ``storefront_items``).

Randomness comes from an injected ``random.Random`` so a seeded generator
gives reproducible picks.
"""

import random
from typing import Iterable, Iterator, List, Optional

from .catalog import DataFrameCatalog
from .config import HIGHLIGHT_SIZE, TRENDING_MIN_RATING, EngineConfig
from .pipeline_types import CatalogItem


def storefront_items(
    catalog: DataFrameCatalog,
    engine_config: Optional[EngineConfig] = None,
) -> Iterator[CatalogItem]:
    """Catalog items passing the same hard filters as candidate retrieval."""
    cfg = engine_config or EngineConfig()
    for item in catalog.iter_items():
        if item.item_type not in cfg.eligible_item_types or item.status != cfg.publish_status:
            continue
        if catalog.get_stock_status(item.item_id) != cfg.in_stock_status:
            continue
        if catalog.get_visibility(item.item_id) not in cfg.visible_values:
            continue
        yield item


def pick_trending(
    items: Iterable[CatalogItem],
    k: int = HIGHLIGHT_SIZE,
    rng: Optional[random.Random] = None,
    min_rating: float = TRENDING_MIN_RATING,
    exclude_id: Optional[int] = None,
) -> List[CatalogItem]:
    """Up to ``k`` items rated at least ``min_rating``, in random order."""
    rng = rng or random.Random()
    pool = [
        it for it in items
        if it.average_rating >= min_rating and it.item_id != exclude_id
    ]
    # sort first so the shuffle only depends on the seed, not on input order
    pool.sort(key=lambda it: it.item_id)
    rng.shuffle(pool)
    return pool[: max(0, k)]


def pick_popular(
    items: Iterable[CatalogItem],
    k: int = HIGHLIGHT_SIZE,
    exclude_id: Optional[int] = None,
) -> List[CatalogItem]:
    """Top ``k`` by sales, ties by item id."""
    pool = [it for it in items if it.item_id != exclude_id]
    pool.sort(key=lambda it: (-it.total_sales, it.item_id))
    return pool[: max(0, k)]
