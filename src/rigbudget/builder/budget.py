"""
预算容差区间 - Budget Tolerance Band

根据配置的策略计算可接受的总价区间；两种策略只会启用一种。
Compute the acceptable total price band under the configured policy; only one
of the two policies is ever active.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Literal

from ..schemas import ToleranceBand

DEFAULT_TOLERANCE_PERCENT = 0.10
"""
默认百分比容差 - Default Percentage Tolerance

总价可在预算上下 10% 内浮动。
The total may move 10% above or below the budget.
"""

DEFAULT_TOLERANCE_ABSOLUTE = 90000
"""
默认固定容差（坚戈）- Default Absolute Tolerance (KZT)
"""


@dataclass(frozen=True)
class TolerancePolicy:
    """
    容差策略 - Tolerance Policy

    字段说明 Field Descriptions:
    - kind: "percentage" 按预算比例，"absolute" 按固定金额
    - percent: 百分比策略下的比例
    - absolute: 固定策略下的金额
    """
    kind: Literal["percentage", "absolute"] = "percentage"
    percent: float = DEFAULT_TOLERANCE_PERCENT
    absolute: int = DEFAULT_TOLERANCE_ABSOLUTE

    def __post_init__(self):
        if self.kind not in ("percentage", "absolute"):
            raise ValueError(f"unknown tolerance policy: {self.kind}")
        if self.percent < 0 or self.absolute < 0:
            raise ValueError("tolerance must not be negative")

    def band_for(self, budget: int) -> ToleranceBand:
        """
        计算容差区间 - Compute Tolerance Band

        百分比策略的边界按精确有理数计算：下限向上取整，上限向下取整，
        保证区间不会比 budget × (1 ± percent) 更宽。
        Percentage bounds are computed as exact rationals: the lower bound is
        rounded up and the upper bound down, so the band is never wider than
        budget × (1 ± percent).

        参数 Parameters:
            budget: 用户预算（正整数）
                    User budget (positive integer)

        返回 Returns:
            闭区间 [lower, upper]，下限不小于 0
            Closed band [lower, upper], lower never below 0
        """
        if budget <= 0:
            raise ValueError(f"budget must be positive, got {budget}")
        if self.kind == "percentage":
            ratio = Fraction(str(self.percent))
            lower = math.ceil(budget * (1 - ratio))
            upper = math.floor(budget * (1 + ratio))
        else:
            lower = budget - self.absolute
            upper = budget + self.absolute
        return ToleranceBand(lower=max(0, lower), upper=upper)
