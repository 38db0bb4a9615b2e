# similar_items/cli.py
"""
Batch runner for the similar-items recommender.
Prints recommendations as JSON without starting FastAPI.

- Loads a catalog export once (parquet / csv / json + optional category tree)
- Runs one or more item ids through the same engine the API uses
- Optional trending / popular highlight picks with a fixed seed
"""

from __future__ import annotations

import argparse
import json
import random
import sys
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from .catalog import CatalogError, load_catalog_snapshot
from .config import CATALOG_SNAPSHOT_PATH, CATEGORY_TREE_PATH, DEFAULT_LIMIT, EngineConfig
from .engine import SimilarItemsEngine
from .mapping import to_payload
from .trending import pick_popular, pick_trending, storefront_items


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def _dedup_preserve_order(seq: List[int]) -> List[int]:
    seen = set()
    out: List[int] = []
    for s in seq:
        if s not in seen:
            seen.add(s)
            out.append(s)
    return out


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Recommend catalog items similar to the given item ids.")
    p.add_argument("item_ids", type=int, nargs="+", help="Base item id(s)")
    p.add_argument("--catalog", type=Path, default=CATALOG_SNAPSHOT_PATH, help="Catalog export")
    p.add_argument("--category-tree", type=Path, default=CATEGORY_TREE_PATH, help="category_id,parent_id table")
    p.add_argument("--limit", type=int, default=DEFAULT_LIMIT)
    p.add_argument("--scores", action="store_true", help="Include per-component scores")
    p.add_argument("--highlights", action="store_true", help="Also print trending / popular picks")
    p.add_argument("--seed", type=int, default=None, help="Seed for trending shuffle")
    p.add_argument("--log-level", default="WARNING")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level)

    try:
        catalog = load_catalog_snapshot(args.catalog, args.category_tree)
    except CatalogError as e:
        logger.error("Could not load catalog: {}", e)
        return 2

    engine = SimilarItemsEngine(catalog, EngineConfig())
    rng = random.Random(args.seed)

    output: Dict[str, dict] = {}
    try:
        available = list(storefront_items(catalog, engine.config)) if args.highlights else []
        for item_id in _dedup_preserve_order(args.item_ids):
            scores = engine.get_similar_items(item_id, args.limit)
            entry: dict = {"similar": to_payload(item_id, scores, args.scores)}
            if args.highlights:
                entry["trending"] = [it.item_id for it in pick_trending(available, rng=rng, exclude_id=item_id)]
                entry["popular"] = [it.item_id for it in pick_popular(available, exclude_id=item_id)]
            output[str(item_id)] = entry
    except CatalogError as e:
        logger.error("Catalog failure while recommending: {}", e)
        return 1

    json.dump(output, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
