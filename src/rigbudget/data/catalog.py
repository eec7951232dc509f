"""
商品目录 - Product Catalog

启动时加载一次的只读商品列表。
Read-only product list, loaded once at startup.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator, List, Sequence

from pydantic import ValidationError

from ..errors import CatalogError
from ..schemas import Product

logger = logging.getLogger(__name__)

# 抓取脚本导出的字段名 -> 目录字段名
# Field names produced by the store scraper -> catalog field names
_SCRAPER_ALIASES = {
    "link": "storeLink",
    "shopLink": "storeLink",
    "reviewsQuantity": "reviewsCount",
    "unitPrice": "price",
}


def _normalize_record(raw: dict) -> dict:
    record = dict(raw)
    for source, target in _SCRAPER_ALIASES.items():
        if source in record and target not in record:
            record[target] = record.pop(source)
    if "id" in record and not isinstance(record["id"], str):
        record["id"] = str(record["id"])
    return record


class Catalog:
    """
    只读商品目录 - Read-only Product Catalog

    按加载顺序保存商品；匹配时的平局按此顺序决定。
    Keeps products in load order; resolver ties are broken by this order.
    """

    def __init__(self, products: Sequence[Product]):
        self._products: tuple[Product, ...] = tuple(products)

    def __len__(self) -> int:
        return len(self._products)

    def __iter__(self) -> Iterator[Product]:
        return iter(self._products)

    def all_products(self) -> List[Product]:
        return list(self._products)


def load_catalog(data_path: Path) -> Catalog:
    """
    从 JSON 文件加载目录 - Load Catalog from JSON File

    文件内容可以是商品数组，也可以是 {"products": [...]}。
    The file holds either a product array or {"products": [...]}.

    异常 Raises:
        CatalogError: 文件缺失、JSON 无效或记录不合法
                      missing file, invalid JSON or invalid record
    """
    if not data_path.exists():
        raise CatalogError(f"catalog file missing: {data_path}")
    try:
        with data_path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as err:
        raise CatalogError(f"catalog file is not valid JSON: {data_path}: {err}") from err

    if isinstance(raw, dict):
        raw = raw.get("products", [])
    if not isinstance(raw, list):
        raise CatalogError(f"catalog file must contain a product list: {data_path}")

    products: List[Product] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise CatalogError(f"catalog record #{index} is not an object")
        try:
            products.append(Product.model_validate(_normalize_record(item)))
        except ValidationError as err:
            raise CatalogError(f"catalog record #{index} is invalid: {err}") from err

    logger.info("[CATALOG] loaded %d products from %s", len(products), data_path)
    return Catalog(products)
