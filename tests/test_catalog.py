import json

import pandas as pd
import pytest

from similar_items.catalog import (
    CATALOG_COLUMNS,
    Catalog,
    CatalogDataError,
    CatalogUnavailableError,
    DataFrameCatalog,
    load_catalog_snapshot,
    normalize_catalog_df,
    parse_attributes,
    parse_id_list,
    write_catalog_snapshot,
)
from similar_items.engine import SimilarItemsEngine
from similar_items.features import extract_features
from similar_items.pipeline_types import CandidateQuery
from similar_items.scoring import semantic_similarity


def test_parse_id_list_shapes():
    assert parse_id_list([3, 1, 3]) == [1, 3]
    assert parse_id_list("4, 2") == [2, 4]
    assert parse_id_list("[5, 6]") == [5, 6]
    assert parse_id_list(None) == []
    assert parse_id_list(float("nan")) == []
    with pytest.raises(CatalogDataError):
        parse_id_list("a,b")


def test_parse_attributes_json_and_empty_terms():
    attrs = parse_attributes('{"pa_color": [2, 1], "pa_size": []}')
    assert attrs == {"pa_color": [1, 2]}
    with pytest.raises(CatalogDataError):
        parse_attributes("[1, 2]")


def test_normalize_catalog_standardizes_storefront_columns():
    raw = pd.DataFrame(
        {
            "ID": [7],
            "post_title": ["  Wool <b>Scarf</b> "],
            "post_content": ["<p>Warm &amp; soft</p>"],
            "_price": ["19.50"],
            "product_cat": ["3,2"],
            "_stock_status": ["InStock"],
            "product_brand": [["Knitco"]],
        }
    )
    df = normalize_catalog_df(raw)

    assert list(df.columns) == CATALOG_COLUMNS
    row = df.iloc[0]
    assert row["item_id"] == 7
    assert row["name"] == "Wool Scarf"
    assert row["description"] == "Warm & soft"
    assert row["price"] == pytest.approx(19.5)
    assert row["categories"] == [2, 3]
    assert row["stock_status"] == "instock"
    assert row["visibility"] == "visible"
    assert row["status"] == "publish"
    assert row["tags"] == []
    assert row["attributes"] == {}


def test_normalize_catalog_requires_id_and_name():
    with pytest.raises(CatalogDataError):
        normalize_catalog_df(pd.DataFrame({"title_x": ["a"]}))


def test_catalog_satisfies_protocol(catalog):
    assert isinstance(catalog, Catalog)
    assert len(catalog) == 10


def test_get_item_and_unknown_item(catalog):
    item = catalog.get_item(11)
    assert item.name == "Slim Fit Cotton T-Shirt"
    assert item.price == pytest.approx(25.0)
    assert catalog.get_item(999) is None
    with pytest.raises(CatalogDataError):
        catalog.get_tags(999)


def test_get_ancestors_parent_first(catalog):
    assert catalog.get_ancestors(3) == [2, 1]
    assert catalog.get_ancestors(1) == []
    assert catalog.get_ancestors(42) == []


def test_get_ancestors_survives_cycles():
    cat = DataFrameCatalog.from_raw(
        pd.DataFrame({"id": [1], "name": ["x"]}),
        pd.DataFrame({"category_id": [1, 2], "parent_id": [2, 1]}),
    )
    assert cat.get_ancestors(1) == [2]


def test_get_brand_prefers_meta_then_taxonomy():
    cat = DataFrameCatalog.from_raw(
        pd.DataFrame(
            {
                "id": [1, 2, 3],
                "name": ["a", "b", "c"],
                "_brand": ["Acme", "", None],
                "product_brand": [[], ["Taxo"], []],
            }
        )
    )
    assert cat.get_brand(1) == "Acme"
    assert cat.get_brand(2) == "Taxo"
    assert cat.get_brand(3) is None


def test_text_fields_join_description_and_excerpt():
    cat = DataFrameCatalog.from_raw(
        pd.DataFrame(
            {"id": [1], "name": ["Mug"], "description": ["Ceramic mug"], "short_description": ["Holds coffee"]}
        )
    )
    assert cat.get_text_fields(1) == ("Mug", "Ceramic mug Holds coffee")


def test_find_items_category_or_price(catalog):
    query = CandidateQuery(exclude_id=10, limit=50, category_ids=frozenset({3}), price_min=10.0, price_max=40.0)
    ids = catalog.find_items_by_category_or_price_range(query)
    assert ids == [11, 12, 13, 19]


def test_find_items_without_signal_uses_hard_filters_only(catalog):
    query = CandidateQuery(exclude_id=10, limit=50)
    ids = catalog.find_items_by_category_or_price_range(query)
    # everything published, in stock, visible and of an eligible type
    assert ids == [11, 12, 13, 15, 19]


def test_find_items_respects_limit(catalog):
    query = CandidateQuery(exclude_id=10, limit=2, category_ids=frozenset({3}))
    assert catalog.find_items_by_category_or_price_range(query) == [11, 13]


def test_load_catalog_snapshot_missing_file(tmp_path):
    with pytest.raises(CatalogUnavailableError):
        load_catalog_snapshot(tmp_path / "nope.parquet", None)


def test_load_catalog_snapshot_from_csv(tmp_path, raw_items):
    path = tmp_path / "catalog.csv"
    raw = raw_items.assign(
        categories=raw_items["categories"].apply(lambda c: ",".join(str(x) for x in c)),
        attributes=raw_items["attributes"].apply(lambda a: "" if not isinstance(a, dict) else json.dumps(a)),
    )
    raw.to_csv(path, index=False)
    cat = load_catalog_snapshot(path, None)
    assert len(cat) == 10
    assert cat.get_categories(11) == {3}
    assert cat.get_attributes(11) == {"pa_color": {100}, "pa_size": {200, 201}}


def test_blank_text_cells_stay_blank(tmp_path):
    path = tmp_path / "catalog.csv"
    pd.DataFrame(
        {"id": [1, 2], "name": ["Wool Scarf", "Garden Hose"], "description": ["", ""], "price": [10, 12]}
    ).to_csv(path, index=False)
    cat = load_catalog_snapshot(path, None)

    assert cat.get_text_fields(1) == ("Wool Scarf", "")
    f1 = extract_features(cat.get_item(1), cat)
    f2 = extract_features(cat.get_item(2), cat)
    assert f1.keywords == frozenset({"wool", "scarf"})
    assert "nan" not in f2.keywords
    assert semantic_similarity(f1.keywords, f2.keywords) == 0.0


def test_missing_names_are_not_titled_nan():
    df = normalize_catalog_df(pd.DataFrame({"id": [1, 2], "name": ["Mug", None]}))
    assert df["name"].tolist() == ["Mug", ""]


def test_snapshot_write_then_load(tmp_path, raw_items, category_tree):
    path = write_catalog_snapshot(raw_items, tmp_path / "snap" / "catalog.parquet")
    assert path.exists()

    tree_path = tmp_path / "category_tree.parquet"
    category_tree.to_parquet(tree_path, index=False)
    cat = load_catalog_snapshot(path, tree_path)

    assert len(cat) == 10
    assert cat.get_attributes(11) == {"pa_color": {100}, "pa_size": {200, 201}}
    results = SimilarItemsEngine(cat).get_similar_items(10, 4)
    assert [r.item_id for r in results] == [11, 12]
