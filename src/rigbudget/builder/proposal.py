"""
模型回复解析 - Oracle Reply Parsing

把模型回复严格解码为 ProposedBuild，结果是带标签的 ParseOk / ParseError，
不使用异常控制流程。
Strictly decode an oracle reply into a ProposedBuild. The result is a tagged
ParseOk / ParseError rather than exception-based control flow.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Tuple, Union

from ..schemas import REQUIRED_CATEGORIES, ProposedBuild

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


@dataclass(frozen=True)
class ParseOk:
    proposal: ProposedBuild


@dataclass(frozen=True)
class ParseError:
    reason: str


ParseResult = Union[ParseOk, ParseError]


class _DuplicateKeys(ValueError):
    def __init__(self, keys: Tuple[str, ...]):
        super().__init__(", ".join(keys))


def _reject_duplicates(pairs):
    seen = set()
    duplicated = []
    for key, _ in pairs:
        if key in seen and key not in duplicated:
            duplicated.append(key)
        seen.add(key)
    if duplicated:
        raise _DuplicateKeys(tuple(duplicated))
    return dict(pairs)


def strip_code_fence(text: str) -> str:
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    if match:
        return match.group(1)
    return stripped


def parse_proposal(text: str) -> ParseResult:
    """
    解析配置提议 - Parse Build Proposal

    回复必须是 JSON 对象，键恰好为 8 个必需类别，值为非空字符串。
    The reply must be a JSON object whose keys are exactly the 8 required
    categories and whose values are non-empty strings.
    """
    if not text or not text.strip():
        return ParseError(reason="empty reply")

    try:
        payload = json.loads(strip_code_fence(text), object_pairs_hook=_reject_duplicates)
    except _DuplicateKeys as err:
        return ParseError(reason=f"duplicated keys: {err}")
    except json.JSONDecodeError as err:
        return ParseError(reason=f"invalid JSON: {err.msg}")

    if not isinstance(payload, dict):
        return ParseError(reason=f"expected a JSON object, got {type(payload).__name__}")

    missing = tuple(c for c in REQUIRED_CATEGORIES if c not in payload)
    extra = tuple(k for k in payload if k not in REQUIRED_CATEGORIES)
    empty = tuple(
        c
        for c in REQUIRED_CATEGORIES
        if c in payload and not (isinstance(payload[c], str) and payload[c].strip())
    )
    if missing or extra or empty:
        problems = []
        if missing:
            problems.append(f"missing keys: {', '.join(missing)}")
        if extra:
            problems.append(f"unexpected keys: {', '.join(extra)}")
        if empty:
            problems.append(f"empty or non-string values: {', '.join(empty)}")
        return ParseError(reason="; ".join(problems))

    return ParseOk(proposal={c: payload[c].strip() for c in REQUIRED_CATEGORIES})
