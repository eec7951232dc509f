"""
配件名称匹配 - Component Name Resolution

把模型给出的自由文本配件名映射到目录中的具体商品。
Map a free-text component name from the oracle to a concrete catalog product.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

from rapidfuzz import fuzz

from ..schemas import Product, ResolvedEntry

SimilarityFn = Callable[[str, str], float]

DEFAULT_THRESHOLD = 0.5


@dataclass(frozen=True)
class NoMatch:
    query: str
    best_score: float = 0.0
    best_title: Optional[str] = None


Resolution = Union[ResolvedEntry, NoMatch]


def normalize_name(value: str) -> str:
    return " ".join(value.lower().split())


def default_similarity(query: str, title: str) -> float:
    """大小写无关的编辑相似度，范围 [0, 1]"""
    return fuzz.ratio(normalize_name(query), normalize_name(title)) / 100.0


def resolve(
    query: str,
    candidates: Sequence[Product],
    threshold: float = DEFAULT_THRESHOLD,
    similarity: SimilarityFn = default_similarity,
) -> Resolution:
    """
    选出与 query 最相似的商品 - Pick the Product Most Similar to query

    平局时按目录顺序取第一个；最高分低于阈值时返回 NoMatch，
    而不是返回一个弱匹配。
    Ties go to the first candidate in catalog order; when the best score is
    below threshold a NoMatch is returned instead of the weak candidate.
    """
    if not query or not query.strip() or not candidates:
        return NoMatch(query=query)

    best: Optional[Product] = None
    best_score = -1.0
    for product in candidates:
        score = similarity(query, product.title)
        if score > best_score:
            best = product
            best_score = score

    if best is None or best_score < threshold:
        return NoMatch(
            query=query,
            best_score=max(best_score, 0.0),
            best_title=best.title if best else None,
        )
    return ResolvedEntry(product=best, score=best_score)


class ComponentResolver:
    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        similarity: SimilarityFn = default_similarity,
        category_filter: bool = False,
    ):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")
        self.threshold = threshold
        self.similarity = similarity
        self.category_filter = category_filter

    def candidates_for(self, category: str, products: Sequence[Product]) -> Sequence[Product]:
        # 未打标签的商品始终参与匹配
        if not self.category_filter:
            return products
        return [p for p in products if p.category is None or p.category == category]

    def resolve(self, query: str, products: Sequence[Product], category: Optional[str] = None) -> Resolution:
        candidates = self.candidates_for(category, products) if category else products
        return resolve(query, candidates, threshold=self.threshold, similarity=self.similarity)
