from __future__ import annotations

"""
Feature extraction: one catalog item -> ItemFeatures.

Pure read of the catalog collaborator. Anything the catalog hands back that
cannot be coerced into the expected shape is reported as CatalogDataError
rather than being silently scored as "empty".
"""

from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from loguru import logger

from . import config
from .catalog import Catalog, CatalogDataError
from .config import EngineConfig
from .normalize import extract_keywords
from .pipeline_types import CatalogItem, ItemFeatures, PriceBand


def price_band(price: float) -> PriceBand:
    """Coarse tier for a price: <25 budget, <100 mid, <500 premium, else luxury."""
    thresholds = config.PRICE_BAND_THRESHOLDS
    if price < thresholds["budget"]:
        return PriceBand.BUDGET
    if price < thresholds["mid"]:
        return PriceBand.MID
    if price < thresholds["premium"]:
        return PriceBand.PREMIUM
    return PriceBand.LUXURY


def _id_set(values: Iterable, what: str, item_id: int) -> FrozenSet[int]:
    if values is None:
        return frozenset()
    if isinstance(values, (str, bytes)):
        raise CatalogDataError(f"{what} for item {item_id} must be a collection of ids, got a string")
    try:
        return frozenset(int(v) for v in values)
    except (TypeError, ValueError) as e:
        raise CatalogDataError(f"Malformed {what} for item {item_id}: {values!r}") from e


def _attribute_map(raw: Optional[Mapping], item_id: int) -> Dict[str, FrozenSet[int]]:
    if not raw:
        return {}
    if not isinstance(raw, Mapping):
        raise CatalogDataError(f"Attributes for item {item_id} must be a mapping, got {type(raw).__name__}")
    out: Dict[str, FrozenSet[int]] = {}
    for name, values in raw.items():
        ids = _id_set(values, f"attribute '{name}'", item_id)
        if ids:
            out[str(name)] = ids
    return out


def _normalise_brand(brand: Optional[str]) -> Optional[str]:
    if brand is None:
        return None
    brand = str(brand).strip()
    return brand or None


def extract_features(
    item: CatalogItem,
    catalog: Catalog,
    engine_config: Optional[EngineConfig] = None,
) -> ItemFeatures:
    """
    Build the feature set for ``item`` from its current catalog data.
    """
    cfg = engine_config or EngineConfig()
    item_id = item.item_id

    try:
        price = float(item.price or 0.0)
    except (TypeError, ValueError) as e:
        raise CatalogDataError(f"Malformed price for item {item_id}: {item.price!r}") from e
    if price < 0:
        raise CatalogDataError(f"Negative price for item {item_id}: {price}")

    name, description = catalog.get_text_fields(item_id)
    keywords = extract_keywords(
        name,
        description,
        stop_words=cfg.stop_words,
        min_length=cfg.min_keyword_length,
    )

    features = ItemFeatures(
        categories=_id_set(catalog.get_categories(item_id), "categories", item_id),
        tags=_id_set(catalog.get_tags(item_id), "tags", item_id),
        attributes=_attribute_map(catalog.get_attributes(item_id), item_id),
        price=price,
        price_band=price_band(price),
        brand=_normalise_brand(catalog.get_brand(item_id)),
        keywords=keywords,
        sales_rank=int(item.total_sales or 0),
        reviews_avg=float(item.average_rating or 0.0),
    )
    logger.debug(
        "Features for item {}: cats={} tags={} attrs={} kw={} band={}",
        item_id, len(features.categories), len(features.tags),
        len(features.attributes), len(features.keywords), features.price_band.value,
    )
    return features
