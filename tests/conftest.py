import json
from typing import List

import pytest

from rigbudget.data.catalog import Catalog
from rigbudget.errors import OracleTransportError
from rigbudget.schemas import Product


SCENARIO_ITEMS = [
    ("CPU", "Ryzen 5 3600", 60000),
    ("GPU", "GTX1660S", 90000),
    ("Motherboard", "B450M-K", 30000),
    ("RAM", "Vengeance16", 20000),
    ("PSU", "EVGA600", 15000),
    ("CPU-Cooler", "Hyper212", 8000),
    ("Case-Fan", "NF-P12", 5000),
    ("Case", "H510", 20000),
]


def scenario_proposal(**overrides) -> dict:
    proposal = {category: title for category, title, _ in SCENARIO_ITEMS}
    for key, value in overrides.items():
        proposal[key.replace("_", "-")] = value
    return proposal


class StubOracle:
    """按顺序返回预设回复，最后一条会一直重复"""

    def __init__(self, replies: List):
        self.replies = list(replies)
        self.calls = []

    def complete(self, system_instructions, conversation):
        self.calls.append(
            {
                "system": system_instructions,
                "conversation": [dict(m) for m in conversation],
            }
        )
        index = min(len(self.calls) - 1, len(self.replies) - 1)
        reply = self.replies[index]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply


class BrokenOracle:
    def __init__(self):
        self.calls = 0

    def complete(self, system_instructions, conversation):
        self.calls += 1
        raise OracleTransportError("429 rate limit reached", reason="rate_limited")


@pytest.fixture
def scenario_catalog():
    return Catalog(
        [
            Product(
                id=f"p-{index}",
                title=title,
                brand="",
                price=price,
                category=category,
                store_link=f"https://kaspi.kz/shop/p/{index}/",
            )
            for index, (category, title, price) in enumerate(SCENARIO_ITEMS, start=1)
        ]
    )


@pytest.fixture
def valid_proposal():
    return scenario_proposal()
