from __future__ import annotations

"""
Catalog collaborator: the interface the recommender reads item data through,
plus a pandas-backed implementation built from a normalized catalog snapshot.

The storefront owns the data; everything here is read-only. Errors coming out
of a catalog are always ``CatalogError`` subclasses so callers can tell an
infrastructure failure apart from "no recommendations".
"""

import json
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Set, Tuple, runtime_checkable

import numpy as np
import pandas as pd
from loguru import logger

from .config import CATALOG_SNAPSHOT_PATH, CATEGORY_TREE_PATH
from .normalize import basic_clean
from .pipeline_types import CandidateQuery, CatalogItem


# ---------------------------
# Errors
# ---------------------------

class CatalogError(Exception):
    """Base class for collaborator failures."""


class CatalogUnavailableError(CatalogError):
    """The catalog store could not be reached or loaded."""


class CatalogDataError(CatalogError):
    """The catalog returned data the recommender cannot interpret."""


# ---------------------------
# Interface
# ---------------------------

@runtime_checkable
class Catalog(Protocol):
    """Read-only view of the storefront catalog."""

    def get_item(self, item_id: int) -> Optional[CatalogItem]: ...

    def get_categories(self, item_id: int) -> Set[int]: ...

    def get_ancestors(self, category_id: int) -> List[int]: ...

    def get_tags(self, item_id: int) -> Set[int]: ...

    def get_attributes(self, item_id: int) -> Dict[str, Set[int]]: ...

    def get_brand(self, item_id: int) -> Optional[str]: ...

    def get_text_fields(self, item_id: int) -> Tuple[str, str]: ...

    def get_stock_status(self, item_id: int) -> str: ...

    def get_visibility(self, item_id: int) -> str: ...

    def find_items_by_category_or_price_range(self, query: CandidateQuery) -> List[int]: ...


# ---------------------------
# Column detection / standardization
# ---------------------------

# Storefront exports use several names for the same field.
COLUMN_CANDIDATES: Dict[str, List[str]] = {
    "item_id": ["item_id", "id", "ID", "product_id"],
    "name": ["name", "Name", "post_title", "title"],
    "description": ["description", "Description", "post_content"],
    "short_description": ["short_description", "post_excerpt", "excerpt"],
    "price": ["price", "_price", "Price"],
    "item_type": ["item_type", "type", "product_type"],
    "status": ["status", "post_status"],
    "stock_status": ["stock_status", "_stock_status"],
    "visibility": ["visibility", "_visibility", "catalog_visibility"],
    "brand": ["brand", "_brand", "_product_brand"],
    "brand_terms": ["brand_terms", "product_brand"],
    "categories": ["categories", "product_cat", "category_ids"],
    "tags": ["tags", "product_tag", "tag_ids"],
    "attributes": ["attributes", "product_attributes"],
    "average_rating": ["average_rating", "rating", "reviews_avg"],
    "total_sales": ["total_sales", "sales", "sales_count"],
}

CATALOG_COLUMNS: List[str] = list(COLUMN_CANDIDATES.keys())

_DEFAULTS: Dict[str, object] = {
    "description": "",
    "short_description": "",
    "price": 0.0,
    "item_type": "simple",
    "status": "publish",
    "stock_status": "instock",
    "visibility": "visible",
    "brand": "",
    "average_rating": 0.0,
    "total_sales": 0,
}


def _standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    col_map: Dict[str, str] = {}
    lower_to_original = {str(c).lower(): c for c in df.columns}

    for canon, candidates in COLUMN_CANDIDATES.items():
        for candidate in candidates:
            if candidate in df.columns:
                col_map[candidate] = canon
                break
            if candidate.lower() in lower_to_original:
                col_map[lower_to_original[candidate.lower()]] = canon
                break

    logger.debug("Standardizing catalog columns with map: {}", col_map)
    return df.rename(columns=col_map)


# ---------------------------
# Field parsing helpers
# ---------------------------

def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and np.isnan(value):
        return True
    return False


def parse_id_list(value) -> List[int]:
    """
    Parse an id collection: list/tuple/set/ndarray, JSON array string or a
    comma-separated string. Missing values become an empty list.
    """
    if _is_missing(value):
        return []
    if isinstance(value, (list, tuple, set, frozenset, np.ndarray)):
        items = list(value)
    else:
        text = str(value).strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                items = json.loads(text)
            except json.JSONDecodeError as e:
                raise CatalogDataError(f"Unparsable id list: {text!r}") from e
        else:
            items = [p for p in text.split(",") if p.strip()]
    try:
        return sorted({int(v) for v in items})
    except (TypeError, ValueError) as e:
        raise CatalogDataError(f"Non-integer id in {value!r}") from e


def parse_attributes(value) -> Dict[str, List[int]]:
    """Parse an attribute map (dict or JSON object string) into name -> sorted ids."""
    if _is_missing(value):
        return {}
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return {}
        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            raise CatalogDataError(f"Unparsable attribute map: {text!r}") from e
    if isinstance(value, np.ndarray):
        # parquet round-trips dict columns as arrays of (key, value) pairs
        value = dict(tuple(pair) for pair in value)
    if not isinstance(value, Mapping):
        raise CatalogDataError(f"Attribute map must be a mapping, got {type(value).__name__}")

    out: Dict[str, List[int]] = {}
    for name, ids in value.items():
        parsed = parse_id_list(ids)
        # attributes without terms are not attributes of the item
        if parsed:
            out[str(name)] = parsed
    return out


def _parse_price(value) -> float:
    if _is_missing(value):
        return 0.0
    try:
        price = float(str(value).strip() or 0)
    except ValueError as e:
        raise CatalogDataError(f"Unparsable price: {value!r}") from e
    return max(0.0, price)


def _clean_token(value, default: str) -> str:
    if _is_missing(value):
        return default
    text = str(value).strip().lower()
    return text or default


# ---------------------------
# Catalog normalization
# ---------------------------

def normalize_catalog_df(df_raw: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize a raw catalog export into the canonical schema:

    - item_id (int, unique)
    - name, description, short_description (clean text)
    - price (float >= 0)
    - item_type, status, stock_status, visibility (lowercase tokens)
    - brand (str, may be empty), brand_terms (List[str])
    - categories, tags (List[int])
    - attributes (Dict[str, List[int]])
    - average_rating (float), total_sales (int)
    """
    logger.info("Normalizing catalog dataframe with {} raw rows", len(df_raw))

    df = _standardize_columns(df_raw.copy())

    if "item_id" not in df.columns or "name" not in df.columns:
        raise CatalogDataError("Catalog export must contain an id and a name column")

    for col, default in _DEFAULTS.items():
        if col not in df.columns:
            df[col] = default
    for col in ("brand_terms", "categories", "tags"):
        if col not in df.columns:
            df[col] = [[] for _ in range(len(df))]
    if "attributes" not in df.columns:
        df["attributes"] = [{} for _ in range(len(df))]

    df["item_id"] = pd.to_numeric(df["item_id"], errors="coerce")
    bad_ids = int(df["item_id"].isna().sum())
    if bad_ids:
        logger.warning("Dropping {} catalog rows without a numeric id", bad_ids)
    df = df.dropna(subset=["item_id"])
    df["item_id"] = df["item_id"].astype("int64")
    df = df.drop_duplicates(subset=["item_id"]).reset_index(drop=True)

    for col in ("name", "description", "short_description"):
        df[col] = df[col].fillna("").astype(str).apply(basic_clean)

    df["price"] = df["price"].apply(_parse_price)
    df["item_type"] = df["item_type"].apply(lambda v: _clean_token(v, "simple"))
    df["status"] = df["status"].apply(lambda v: _clean_token(v, "publish"))
    df["stock_status"] = df["stock_status"].apply(lambda v: _clean_token(v, "instock"))
    df["visibility"] = df["visibility"].apply(lambda v: _clean_token(v, "visible"))

    df["brand"] = df["brand"].apply(lambda v: "" if _is_missing(v) else str(v).strip())
    df["brand_terms"] = df["brand_terms"].apply(
        lambda v: [] if _is_missing(v) else [str(t).strip() for t in (v if not isinstance(v, str) else v.split(",")) if str(t).strip()]
    )
    df["categories"] = df["categories"].apply(parse_id_list)
    df["tags"] = df["tags"].apply(parse_id_list)
    df["attributes"] = df["attributes"].apply(parse_attributes)

    df["average_rating"] = pd.to_numeric(df["average_rating"], errors="coerce").fillna(0.0).astype(float)
    df["total_sales"] = pd.to_numeric(df["total_sales"], errors="coerce").fillna(0).astype("int64")

    df_out = df[CATALOG_COLUMNS]
    logger.info("Catalog normalization complete. Final rows: {}", len(df_out))
    return df_out


def normalize_category_tree(df_raw: pd.DataFrame) -> Dict[int, int]:
    """
    Turn a (category_id, parent_id) table into a child -> parent map.
    Roots (parent 0 / missing) are left out.
    """
    cols = {str(c).lower(): c for c in df_raw.columns}
    cid = cols.get("category_id") or cols.get("term_id") or cols.get("id")
    pid = cols.get("parent_id") or cols.get("parent")
    if cid is None or pid is None:
        raise CatalogDataError(
            f"Category tree needs category_id and parent_id columns. Found: {list(df_raw.columns)}"
        )
    parents: Dict[int, int] = {}
    for child, parent in df_raw[[cid, pid]].itertuples(index=False, name=None):
        if _is_missing(child) or _is_missing(parent) or int(parent) == 0:
            continue
        parents[int(child)] = int(parent)
    return parents


# ---------------------------
# Pandas-backed catalog
# ---------------------------

class DataFrameCatalog:
    """
    In-process catalog over a normalized DataFrame.

    Reads are independent per item and never mutate the frame, so one
    instance can serve concurrent requests.
    """

    def __init__(self, items: pd.DataFrame, category_parents: Optional[Mapping[int, int]] = None):
        missing = [c for c in CATALOG_COLUMNS if c not in items.columns]
        if missing:
            raise CatalogDataError(f"Catalog frame is missing columns: {missing}. Run normalize_catalog_df first.")
        self._df = items.set_index("item_id", drop=False)
        self._parents: Dict[int, int] = dict(category_parents or {})

    @classmethod
    def from_raw(cls, df_raw: pd.DataFrame, category_tree: Optional[pd.DataFrame] = None) -> "DataFrameCatalog":
        parents = normalize_category_tree(category_tree) if category_tree is not None else {}
        return cls(normalize_catalog_df(df_raw), parents)

    def __len__(self) -> int:
        return len(self._df)

    # ---- per-item lookups ----

    def _row(self, item_id: int) -> pd.Series:
        try:
            return self._df.loc[int(item_id)]
        except KeyError as e:
            raise CatalogDataError(f"Unknown catalog item {item_id}") from e

    def get_item(self, item_id: int) -> Optional[CatalogItem]:
        if int(item_id) not in self._df.index:
            return None
        row = self._df.loc[int(item_id)]
        return CatalogItem(
            item_id=int(row["item_id"]),
            name=str(row["name"]),
            price=float(row["price"]),
            item_type=str(row["item_type"]),
            status=str(row["status"]),
            average_rating=float(row["average_rating"]),
            total_sales=int(row["total_sales"]),
        )

    def get_categories(self, item_id: int) -> Set[int]:
        return set(self._row(item_id)["categories"])

    def get_ancestors(self, category_id: int) -> List[int]:
        """Parent first, root last."""
        out: List[int] = []
        seen = {int(category_id)}
        current = self._parents.get(int(category_id))
        while current is not None and current not in seen:
            out.append(current)
            seen.add(current)
            current = self._parents.get(current)
        if current is not None:
            logger.warning("Category cycle detected above category {}", category_id)
        return out

    def get_tags(self, item_id: int) -> Set[int]:
        return set(self._row(item_id)["tags"])

    def get_attributes(self, item_id: int) -> Dict[str, Set[int]]:
        return {name: set(ids) for name, ids in self._row(item_id)["attributes"].items()}

    def get_brand(self, item_id: int) -> Optional[str]:
        row = self._row(item_id)
        brand = str(row["brand"] or "").strip()
        if brand:
            return brand
        terms = list(row["brand_terms"])
        return terms[0] if terms else None

    def get_text_fields(self, item_id: int) -> Tuple[str, str]:
        row = self._row(item_id)
        description = " ".join(p for p in (row["description"], row["short_description"]) if p)
        return str(row["name"]), description

    def get_stock_status(self, item_id: int) -> str:
        return str(self._row(item_id)["stock_status"])

    def get_visibility(self, item_id: int) -> str:
        return str(self._row(item_id)["visibility"])

    # ---- candidate lookup ----

    def find_items_by_category_or_price_range(self, query: CandidateQuery) -> List[int]:
        df = self._df
        if df.empty or query.limit <= 0:
            return []
        mask = (
            (df["item_id"] != int(query.exclude_id))
            & df["item_type"].isin(query.item_types)
            & (df["status"] == query.status)
            & (df["stock_status"] == query.stock_status)
            & df["visibility"].isin(query.visibilities)
        )

        if query.has_signal:
            signal = pd.Series(False, index=df.index)
            if query.category_ids:
                wanted = query.category_ids
                signal |= df["categories"].apply(lambda cats: not wanted.isdisjoint(cats)).astype(bool)
            if query.price_min is not None and query.price_max is not None:
                signal |= df["price"].between(query.price_min, query.price_max)
            mask &= signal

        ids = df.loc[mask, "item_id"].head(int(query.limit))
        return [int(i) for i in ids.tolist()]

    # ---- whole-catalog views (used by highlight selections) ----

    def iter_items(self) -> Iterable[CatalogItem]:
        for item_id in self._df.index:
            item = self.get_item(int(item_id))
            if item is not None:
                yield item


# ---------------------------
# IO helpers
# ---------------------------

def _read_table(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise CatalogUnavailableError(f"Catalog file not found: {path}")
    ext = path.suffix.lower()
    try:
        if ext == ".parquet":
            return pd.read_parquet(path)
        if ext == ".json":
            return pd.read_json(path)
        return pd.read_csv(path, encoding="utf-8")
    except (OSError, ValueError) as e:
        raise CatalogUnavailableError(f"Failed to read catalog file {path}: {e}") from e


def load_catalog_snapshot(
    path: Path = CATALOG_SNAPSHOT_PATH,
    category_tree_path: Optional[Path] = CATEGORY_TREE_PATH,
) -> DataFrameCatalog:
    """
    Load a catalog export (parquet / csv / json) and optional category tree.
    """
    logger.info("Loading catalog snapshot from {}", path)
    df_raw = _read_table(Path(path))

    tree = None
    if category_tree_path is not None and Path(category_tree_path).exists():
        tree = _read_table(Path(category_tree_path))
    elif category_tree_path is not None:
        logger.warning("No category tree at {}; categories treated as roots", category_tree_path)

    catalog = DataFrameCatalog.from_raw(df_raw, tree)
    logger.info("Loaded catalog snapshot with {} items", len(catalog))
    return catalog


def write_catalog_snapshot(df_raw: pd.DataFrame, output_path: Path = CATALOG_SNAPSHOT_PATH) -> Path:
    """Normalize a raw export and write it as a parquet snapshot."""
    df_norm = normalize_catalog_df(df_raw)
    df_norm = df_norm.assign(attributes=df_norm["attributes"].apply(json.dumps))
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df_norm.to_parquet(output_path, index=False)
    logger.info("Catalog snapshot written to {} with {} rows", output_path, len(df_norm))
    return output_path
