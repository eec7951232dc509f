"""Builder 模块：名称匹配、预算区间与回复解析"""

from .budget import TolerancePolicy
from .proposal import ParseError, ParseOk, ParseResult, parse_proposal
from .resolver import ComponentResolver, NoMatch, default_similarity, resolve

__all__ = [
    "TolerancePolicy",
    "ParseError",
    "ParseOk",
    "ParseResult",
    "parse_proposal",
    "ComponentResolver",
    "NoMatch",
    "default_similarity",
    "resolve",
]
