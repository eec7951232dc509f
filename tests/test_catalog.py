import json

import pytest
from pydantic import ValidationError

from rigbudget.config import DEFAULT_CATALOG_PATH
from rigbudget.data.catalog import load_catalog
from rigbudget.errors import CatalogError
from rigbudget.schemas import REQUIRED_CATEGORIES


def _write(tmp_path, payload):
    path = tmp_path / "products.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_load_catalog_keeps_file_order(tmp_path):
    path = _write(
        tmp_path,
        [
            {"id": "2", "title": "H510", "brand": "NZXT", "price": 20000, "storeLink": "https://kaspi.kz/a"},
            {"id": "1", "title": "NF-P12", "brand": "Noctua", "price": 5000, "storeLink": "https://kaspi.kz/b"},
        ],
    )

    catalog = load_catalog(path)

    assert len(catalog) == 2
    assert [p.id for p in catalog] == ["2", "1"]


def test_load_catalog_accepts_products_envelope_and_scraper_fields(tmp_path):
    path = _write(
        tmp_path,
        {
            "products": [
                {
                    "id": 100431,
                    "title": "AMD Ryzen 5 3600",
                    "brand": "AMD",
                    "price": 60000,
                    "link": "https://kaspi.kz/shop/p/100431/",
                    "reviewsQuantity": 812,
                    "rating": 4.9,
                }
            ]
        },
    )

    product = load_catalog(path).all_products()[0]

    assert product.id == "100431"
    assert product.store_link == "https://kaspi.kz/shop/p/100431/"
    assert product.reviews_count == 812


def test_missing_file_raises_catalog_error(tmp_path):
    with pytest.raises(CatalogError):
        load_catalog(tmp_path / "nope.json")


def test_invalid_json_raises_catalog_error(tmp_path):
    path = tmp_path / "products.json"
    path.write_text("[{", encoding="utf-8")

    with pytest.raises(CatalogError):
        load_catalog(path)


def test_negative_price_raises_catalog_error(tmp_path):
    path = _write(tmp_path, [{"id": "1", "title": "x", "price": -1}])

    with pytest.raises(CatalogError):
        load_catalog(path)


def test_products_are_immutable(scenario_catalog):
    product = scenario_catalog.all_products()[0]

    with pytest.raises(ValidationError):
        product.price = 1


def test_bundled_catalog_covers_every_category():
    catalog = load_catalog(DEFAULT_CATALOG_PATH)

    for category in REQUIRED_CATEGORIES:
        assert any(p.category == category for p in catalog), category
