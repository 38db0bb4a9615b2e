from dataclasses import FrozenInstanceError

import pytest

from similar_items.catalog import CatalogDataError
from similar_items.config import EngineConfig
from similar_items.features import extract_features, price_band
from similar_items.pipeline_types import CatalogItem, PriceBand


def test_price_band_thresholds():
    assert price_band(0) == PriceBand.BUDGET
    assert price_band(24.99) == PriceBand.BUDGET
    assert price_band(25) == PriceBand.MID
    assert price_band(99.99) == PriceBand.MID
    assert price_band(100) == PriceBand.PREMIUM
    assert price_band(499) == PriceBand.PREMIUM
    assert price_band(500) == PriceBand.LUXURY


def test_extract_features_from_catalog(catalog):
    item = catalog.get_item(10)
    f = extract_features(item, catalog)

    assert f.categories == frozenset({3})
    assert f.tags == frozenset({1, 2, 3})
    assert f.attributes == {"pa_color": frozenset({100, 101}), "pa_size": frozenset({200})}
    assert f.price == pytest.approx(20.0)
    assert f.price_band == PriceBand.BUDGET
    assert f.brand == "Acme"
    assert f.keywords == frozenset({"classic", "cotton", "t-shirt", "soft", "tee", "everyday", "wear"})
    assert f.sales_rank == 50
    assert f.reviews_avg == pytest.approx(4.8)


def test_blank_brand_becomes_none(catalog):
    f = extract_features(catalog.get_item(19), catalog)
    assert f.brand is None


def test_features_are_immutable(catalog):
    f = extract_features(catalog.get_item(10), catalog)
    with pytest.raises(FrozenInstanceError):
        f.price = 5.0
    with pytest.raises(TypeError):
        f.attributes["pa_color"] = frozenset()


def test_custom_stop_words(catalog):
    cfg = EngineConfig(stop_words=("cotton", "tee"))
    f = extract_features(catalog.get_item(10), catalog, cfg)
    assert "cotton" not in f.keywords
    assert "tee" not in f.keywords
    # 'for' is only a stop word in the default list
    assert "for" in f.keywords


def test_malformed_attributes_raise(catalog, monkeypatch):
    monkeypatch.setattr(catalog, "get_attributes", lambda item_id: {"pa_color": ["red"]})
    with pytest.raises(CatalogDataError):
        extract_features(catalog.get_item(10), catalog)


def test_negative_price_is_malformed(catalog):
    item = CatalogItem(item_id=10, name="Classic Cotton T-Shirt", price=-1.0)
    with pytest.raises(CatalogDataError):
        extract_features(item, catalog)
