import json

import pandas as pd
import pytest

from similar_items.catalog import DataFrameCatalog


# Category tree:
#   1 Clothing -> 2 Shirts -> 3 T-Shirts
#   4 Electronics -> 5 Phones
#   6 Garden
CATEGORY_TREE = pd.DataFrame(
    {
        "category_id": [1, 2, 3, 4, 5, 6],
        "parent_id": [0, 1, 2, 0, 4, 0],
    }
)


def _raw_items() -> pd.DataFrame:
    rows = [
        # base item for most tests
        dict(id=10, name="Classic Cotton T-Shirt", description="Soft cotton tee for everyday wear",
             price=20, categories=[3], tags=[1, 2, 3],
             attributes={"pa_color": [100, 101], "pa_size": [200]}, brand="Acme",
             average_rating=4.8, total_sales=50),
        dict(id=11, name="Slim Fit Cotton T-Shirt", description="Soft cotton tee with a slim fit",
             price=25, categories=[3], tags=[2, 3, 4],
             attributes={"pa_color": [100], "pa_size": [200, 201]}, brand="acme",
             average_rating=4.6, total_sales=120),
        # price-window match only
        dict(id=12, name="Linen Button Shirt", description="Breathable linen shirt",
             price=35, categories=[2], tags=[5],
             attributes={"pa_color": [102]}, brand="Other",
             average_rating=4.9, total_sales=10),
        # same title as the base -> near-duplicate
        dict(id=13, name="Classic Cotton T-Shirt", description="Soft cotton tee for everyday wear",
             price=20, categories=[3], tags=[1, 2, 3],
             attributes={"pa_color": [100, 101], "pa_size": [200]}, brand="Acme",
             average_rating=3.0, total_sales=5),
        dict(id=14, name="Cotton Tee Sold Out", description="Cotton tee",
             price=20, categories=[3], stock_status="outofstock"),
        dict(id=15, name="Smartphone X", description="Android phone",
             price=400, categories=[5], brand="Phonely", average_rating=4.7, total_sales=300),
        dict(id=16, name="Hidden Cotton Tee", description="Cotton tee",
             price=20, categories=[3], visibility="hidden"),
        dict(id=17, name="Draft Cotton Tee", description="Cotton tee",
             price=20, categories=[3], status="draft"),
        dict(id=18, name="Tee Bundle", description="Three cotton tees",
             price=50, categories=[3], item_type="grouped"),
        # inside the price window but shares nothing else -> below the score floor
        dict(id=19, name="Garden Hose", description="Flexible hose",
             price=30, categories=[6], brand=""),
    ]
    return pd.DataFrame(rows)


@pytest.fixture
def raw_items() -> pd.DataFrame:
    return _raw_items()


@pytest.fixture
def catalog() -> DataFrameCatalog:
    return DataFrameCatalog.from_raw(_raw_items(), CATEGORY_TREE)


@pytest.fixture
def catalog_files(tmp_path):
    """The fixture catalog written out as CSV exports, the way a storefront dump arrives."""
    raw = _raw_items()
    raw = raw.assign(
        categories=raw["categories"].apply(lambda c: ",".join(str(x) for x in c)),
        attributes=raw["attributes"].apply(lambda a: json.dumps(a) if isinstance(a, dict) else ""),
    )
    items_path = tmp_path / "catalog.csv"
    tree_path = tmp_path / "category_tree.csv"
    raw.to_csv(items_path, index=False)
    CATEGORY_TREE.to_csv(tree_path, index=False)
    return items_path, tree_path


@pytest.fixture
def category_tree() -> pd.DataFrame:
    return CATEGORY_TREE.copy()
