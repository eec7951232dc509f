"""
FPS 估算 - FPS Estimation

单次请求：配件列表 + 游戏列表 -> 每个游戏的 FPS 区间。没有重试，也不做目录匹配。
Single request: component list + game list -> per-game FPS range. No retries,
no catalog resolution.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, List, Sequence

from .builder.proposal import strip_code_fence
from .errors import InvalidRequest, MalformedOracleReply
from .llm.oracle import Oracle
from .llm.prompts import FPS_SYSTEM_PROMPT, FPS_USER_PROMPT

logger = logging.getLogger(__name__)

UNKNOWN_FPS = "unknown"


def _clean_names(values: Sequence[str]) -> List[str]:
    out: List[str] = []
    for value in values:
        name = (value or "").strip()
        if name and name not in out:
            out.append(name)
    return out


class FpsEstimator:
    def __init__(self, oracle: Oracle):
        self.oracle = oracle

    def estimate(self, component_names: Sequence[str], game_names: Sequence[str]) -> Dict[str, str]:
        components = _clean_names(component_names)
        games = _clean_names(game_names)
        if not components or not games:
            raise InvalidRequest("component_names and game_names must not be empty")

        prompt = FPS_USER_PROMPT.format(components=", ".join(components), games=", ".join(games))
        reply = self.oracle.complete(FPS_SYSTEM_PROMPT, [{"role": "user", "content": prompt}])
        try:
            payload = json.loads(strip_code_fence(reply))
        except json.JSONDecodeError as err:
            raise MalformedOracleReply(f"FPS reply is not valid JSON: {err.msg}") from err
        if not isinstance(payload, dict):
            raise MalformedOracleReply("FPS reply must be a JSON object")

        # 模型可能改变游戏名大小写
        by_lower = {str(k).strip().lower(): v for k, v in payload.items()}
        result: Dict[str, str] = {}
        for game in games:
            value = payload.get(game, by_lower.get(game.lower()))
            if value is None or (isinstance(value, str) and not value.strip()):
                logger.info("[FPS] no estimate returned for %r", game)
                result[game] = UNKNOWN_FPS
            else:
                result[game] = str(value).strip()
        return result
