"""
错误类型 - Error Types

只有 OracleTransportError 与 NegotiationExhausted 会越过协商边界；
JSON 格式错误、未匹配类别、预算超出范围均为内部重试条件。
Only OracleTransportError and NegotiationExhausted cross the negotiation
boundary; malformed JSON, unresolved categories and out-of-range totals are
internal retry triggers.
"""

from __future__ import annotations

from typing import Literal, Optional

TransportReason = Literal["rate_limited", "auth_error", "timeout", "not_configured", "model_error"]


class RigBudgetError(Exception):
    pass


class OracleTransportError(RigBudgetError):
    def __init__(self, message: str, reason: TransportReason = "model_error"):
        super().__init__(message)
        self.reason = reason


class NegotiationExhausted(RigBudgetError):
    def __init__(self, attempts: int, last_outcome: Optional[str] = None, detail: str = ""):
        message = f"no acceptable build after {attempts} attempts"
        if last_outcome:
            message += f" (last outcome: {last_outcome})"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.attempts = attempts
        self.last_outcome = last_outcome


class MalformedOracleReply(RigBudgetError):
    pass


class CatalogError(RigBudgetError):
    pass


class InvalidRequest(RigBudgetError):
    pass


def classify_transport_error(err: Exception) -> TransportReason:
    name = type(err).__name__.lower()
    msg = str(err).lower()
    if "ratelimit" in name or "rate limit" in msg or "429" in msg:
        return "rate_limited"
    if "auth" in name or "api key" in msg or "unauthorized" in msg:
        return "auth_error"
    if "timeout" in name or "timeout" in msg or "timed out" in msg:
        return "timeout"
    return "model_error"
