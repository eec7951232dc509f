from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field


RequiredCategory = Literal[
    "CPU",
    "GPU",
    "Motherboard",
    "RAM",
    "PSU",
    "CPU-Cooler",
    "Case-Fan",
    "Case",
]

REQUIRED_CATEGORIES: tuple[str, ...] = get_args(RequiredCategory)

ProposedBuild = Dict[str, str]


class Product(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str
    brand: str = ""
    price: int = Field(ge=0)
    image: Optional[str] = None
    rating: Optional[float] = None
    reviews_count: Optional[int] = Field(default=None, alias="reviewsCount")
    store_link: str = Field(default="", alias="storeLink")
    # 可选类别标签，仅在按类别过滤匹配时使用
    category: Optional[str] = None


class ResolvedEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    product: Product
    score: float


ResolvedBuild = Dict[str, ResolvedEntry]


class UnresolvedComponent(BaseModel):
    category: str
    requested_name: str
    budget: Optional[int] = None
    attempt: Optional[int] = None
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ToleranceBand(BaseModel):
    model_config = ConfigDict(frozen=True)

    lower: int
    upper: int

    def contains(self, total: int) -> bool:
        return self.lower <= total <= self.upper


class NegotiationResult(BaseModel):
    proposal: ProposedBuild
    resolved: ResolvedBuild
    total_price: int
    budget: int
    band: ToleranceBand
    attempts: int

    @property
    def budget_difference(self) -> int:
        return self.total_price - self.budget


# === HTTP 请求/响应 ===


class BuildRequest(BaseModel):
    budget: int = Field(gt=0)


class BuildResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chosen_components: Dict[str, str] = Field(alias="chosenComponents")
    resolved_products: Dict[str, Product] = Field(alias="resolvedProducts")
    total_price: int = Field(alias="totalPrice")
    budget_difference: int = Field(alias="budgetDifference")
    attempts: int = 1

    @classmethod
    def from_result(cls, result: NegotiationResult) -> "BuildResponse":
        return cls(
            chosen_components=dict(result.proposal),
            resolved_products={k: v.product for k, v in result.resolved.items()},
            total_price=result.total_price,
            budget_difference=result.budget_difference,
            attempts=result.attempts,
        )


class FpsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    component_names: List[str] = Field(alias="componentNames", min_length=1)
    game_names: List[str] = Field(alias="gameNames", min_length=1)


class FpsResponse(BaseModel):
    fps: Dict[str, str] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    error: Literal["negotiation_exhausted", "oracle_transport", "malformed_oracle_reply", "invalid_request"]
    detail: str
    attempts: Optional[int] = None
    reason: Optional[str] = None
