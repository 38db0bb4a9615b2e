"""Typed containers shared across pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional


class PriceBand(str, Enum):
    BUDGET = "budget"
    MID = "mid"
    PREMIUM = "premium"
    LUXURY = "luxury"


@dataclass(frozen=True)
class CatalogItem:
    """The handful of catalog fields the pipeline reads directly off an item."""

    item_id: int
    name: str
    price: float = 0.0
    item_type: str = "simple"
    status: str = "publish"
    average_rating: float = 0.0
    total_sales: int = 0


@dataclass(frozen=True)
class ItemFeatures:
    """Structured view of an item used for similarity scoring."""

    categories: FrozenSet[int]
    tags: FrozenSet[int]
    attributes: Mapping[str, FrozenSet[int]]
    price: float
    price_band: PriceBand
    brand: Optional[str]
    keywords: FrozenSet[str]
    # carried for downstream use, not weighted into the score
    sales_rank: int = 0
    reviews_avg: float = 0.0

    def __post_init__(self) -> None:
        frozen = {name: frozenset(values) for name, values in self.attributes.items()}
        object.__setattr__(self, "attributes", MappingProxyType(frozen))


@dataclass(frozen=True)
class CandidateScore:
    """Weighted similarity of one candidate against the base item."""

    item_id: int
    overall_score: float
    category: float = 0.0
    tag: float = 0.0
    attribute: float = 0.0
    price: float = 0.0
    brand: float = 0.0
    semantic: float = 0.0

    def components(self) -> dict:
        return {
            "category": self.category,
            "tags": self.tag,
            "attributes": self.attribute,
            "price": self.price,
            "brand": self.brand,
            "semantic": self.semantic,
        }


@dataclass(frozen=True)
class CandidateQuery:
    """
    Parameters for the catalog's candidate lookup.

    An item qualifies if it is in one of ``category_ids`` OR its price lies
    within ``[price_min, price_max]``. When neither signal is set, only the
    hard filters (type, status, stock, visibility) apply.
    """

    exclude_id: int
    limit: int
    category_ids: FrozenSet[int] = field(default_factory=frozenset)
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    item_types: tuple = ("simple", "variable")
    status: str = "publish"
    stock_status: str = "instock"
    visibilities: tuple = ("catalog", "visible")

    @property
    def has_signal(self) -> bool:
        return bool(self.category_ids) or self.price_min is not None
