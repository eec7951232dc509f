from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Literal, Optional, Tuple, TypedDict

from langgraph.graph import END, StateGraph

from .builder.budget import TolerancePolicy
from .builder.proposal import ParseError, ParseOk, ParseResult, parse_proposal
from .builder.resolver import ComponentResolver, NoMatch
from .config import HistoryMode, Settings
from .data.audit import AuditSink, NullAuditSink
from .data.catalog import Catalog
from .errors import NegotiationExhausted
from .llm.oracle import Message, Oracle
from .llm.prompts import (
    BUILD_SYSTEM_PROMPT,
    DIRECTION_KEEP,
    DIRECTION_LOWER,
    DIRECTION_RAISE,
    FIX_FORMAT_PROMPT,
    FIX_PRICE_PROMPT,
    INITIAL_BUILD_PROMPT,
    UNRESOLVED_LINE,
)
from .schemas import (
    REQUIRED_CATEGORIES,
    NegotiationResult,
    ProposedBuild,
    ResolvedBuild,
    ToleranceBand,
    UnresolvedComponent,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 20

_EXAMPLE_PROPOSAL = (
    '{"CPU": "AMD Ryzen 5 3600", "GPU": "GeForce GTX 1660 SUPER", "Motherboard": "ASUS PRIME B450M-K", '
    '"RAM": "Corsair Vengeance 16GB", "PSU": "EVGA 600 W1", "CPU-Cooler": "Cooler Master Hyper 212", '
    '"Case-Fan": "Noctua NF-P12", "Case": "NZXT H510"}'
)


class EvaluationOutcome(str, Enum):
    ACCEPTED = "accepted"
    MALFORMED_PROPOSAL = "malformed_proposal"
    UNRESOLVED_CATEGORY = "unresolved_category"
    BUDGET_OUT_OF_RANGE = "budget_out_of_range"


@dataclass(frozen=True)
class Evaluation:
    outcome: EvaluationOutcome
    total_price: int = 0
    unresolved: Tuple[str, ...] = field(default_factory=tuple)
    reason: str = ""

    @property
    def accepted(self) -> bool:
        return self.outcome is EvaluationOutcome.ACCEPTED


class NegotiationState(TypedDict, total=False):
    budget: int
    band: ToleranceBand
    attempt: int
    conversation: List[Message]
    reply: str
    parse_result: ParseResult
    proposal: ProposedBuild
    resolved: ResolvedBuild
    unresolved: List[str]
    total_price: int
    evaluation: Evaluation


def price_direction(total: int, band: ToleranceBand) -> Literal["raise", "lower", "keep"]:
    if total < band.lower:
        return "raise"
    if total > band.upper:
        return "lower"
    return "keep"


class BuildNegotiator:
    """
    预算装机协商器 - Budget Build Negotiator

    循环：提议 -> 解析 -> 匹配 -> 评估 -> 接受 / 重试 / 放弃。
    Loop: propose -> parse -> resolve -> evaluate -> accept / retry / give up.
    每次 generate 调用拥有独立状态；目录与审计存储由构造函数注入。
    Every generate call owns its state; the catalog and audit sink are
    injected at construction.
    """

    def __init__(
        self,
        oracle: Oracle,
        catalog: Catalog,
        resolver: Optional[ComponentResolver] = None,
        tolerance: Optional[TolerancePolicy] = None,
        audit_sink: Optional[AuditSink] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        history_mode: HistoryMode = "replace",
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        if history_mode not in ("replace", "cumulative"):
            raise ValueError(f"unknown history mode: {history_mode}")
        self.oracle = oracle
        self.catalog = catalog
        self.resolver = resolver or ComponentResolver()
        self.tolerance = tolerance or TolerancePolicy()
        self.audit_sink = audit_sink or NullAuditSink()
        self.max_attempts = max_attempts
        self.history_mode = history_mode
        self.system_instructions = BUILD_SYSTEM_PROMPT.format(
            categories=", ".join(REQUIRED_CATEGORIES),
            example=_EXAMPLE_PROPOSAL,
        )
        self.graph = self._build_graph()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        oracle: Oracle,
        catalog: Catalog,
        audit_sink: Optional[AuditSink] = None,
    ) -> "BuildNegotiator":
        return cls(
            oracle,
            catalog,
            resolver=ComponentResolver(
                threshold=settings.resolver_threshold,
                category_filter=settings.resolver_category_filter,
            ),
            tolerance=TolerancePolicy(
                kind=settings.tolerance_policy,
                percent=settings.tolerance_percent,
                absolute=settings.tolerance_absolute,
            ),
            audit_sink=audit_sink,
            max_attempts=settings.max_attempts,
            history_mode=settings.history_mode,
        )

    def _build_graph(self):
        builder = StateGraph(NegotiationState)
        builder.add_node("propose", self.propose)
        builder.add_node("parse", self.parse)
        builder.add_node("resolve", self.resolve)
        builder.add_node("evaluate", self.evaluate)
        builder.add_node("retry", self.retry)

        builder.set_entry_point("propose")
        builder.add_edge("propose", "parse")
        builder.add_conditional_edges(
            "parse",
            self.route_after_parse,
            {"resolve": "resolve", "evaluate": "evaluate"},
        )
        builder.add_edge("resolve", "evaluate")
        builder.add_conditional_edges(
            "evaluate",
            self.route_after_evaluation,
            {"accepted": END, "exhausted": END, "retry": "retry"},
        )
        builder.add_edge("retry", "propose")

        return builder.compile()

    # === 节点 ===

    def propose(self, state: NegotiationState):
        attempt = state.get("attempt", 0) + 1
        start = time.time()
        # OracleTransportError 不在此重试，直接抛出
        reply = self.oracle.complete(self.system_instructions, state["conversation"])
        logger.info(
            "[PERF] negotiation attempt %d/%d oracle round-trip took %.3fs",
            attempt,
            self.max_attempts,
            time.time() - start,
        )
        return {"attempt": attempt, "reply": reply}

    def parse(self, state: NegotiationState):
        result = parse_proposal(state.get("reply", ""))
        if isinstance(result, ParseOk):
            return {"parse_result": result, "proposal": result.proposal}
        logger.info("[NEGOTIATE] attempt %d: malformed proposal (%s)", state["attempt"], result.reason)
        return {
            "parse_result": result,
            "proposal": {},
            "resolved": {},
            "unresolved": [],
            "total_price": 0,
        }

    def route_after_parse(self, state: NegotiationState):
        if isinstance(state["parse_result"], ParseOk):
            return "resolve"
        return "evaluate"

    def resolve(self, state: NegotiationState):
        proposal = state["proposal"]
        products = self.catalog.all_products()
        resolved: ResolvedBuild = {}
        unresolved: List[str] = []
        for category in REQUIRED_CATEGORIES:
            requested = proposal[category]
            match = self.resolver.resolve(requested, products, category=category)
            if isinstance(match, NoMatch):
                unresolved.append(category)
                logger.info(
                    "[NEGOTIATE] attempt %d: %s %r unresolved (best %.2f %r)",
                    state["attempt"],
                    category,
                    requested,
                    match.best_score,
                    match.best_title,
                )
                self._record_unresolved(category, requested, state)
                continue
            resolved[category] = match
        total = sum(entry.product.price for entry in resolved.values())
        return {"resolved": resolved, "unresolved": unresolved, "total_price": total}

    def _record_unresolved(self, category: str, requested: str, state: NegotiationState) -> None:
        entry = UnresolvedComponent(
            category=category,
            requested_name=requested,
            budget=state["budget"],
            attempt=state["attempt"],
        )
        try:
            self.audit_sink.record(entry)
        except Exception as err:
            # 审计只是尽力而为，不影响协商
            logger.warning("[AUDIT] failed to record unresolved %s %r: %s", category, requested, err)

    def evaluate(self, state: NegotiationState):
        evaluation = self._evaluate(state)
        logger.info(
            "[NEGOTIATE] attempt %d: %s (total=%d, band=%d..%d)",
            state["attempt"],
            evaluation.outcome.value,
            evaluation.total_price,
            state["band"].lower,
            state["band"].upper,
        )
        return {"evaluation": evaluation}

    def _evaluate(self, state: NegotiationState) -> Evaluation:
        parse_result = state["parse_result"]
        if isinstance(parse_result, ParseError):
            return Evaluation(
                outcome=EvaluationOutcome.MALFORMED_PROPOSAL,
                reason=parse_result.reason,
            )

        resolved = state.get("resolved", {})
        total = state.get("total_price", 0)
        unresolved = tuple(state.get("unresolved", []))
        if unresolved:
            return Evaluation(
                outcome=EvaluationOutcome.UNRESOLVED_CATEGORY,
                total_price=total,
                unresolved=unresolved,
                reason=f"unresolved: {', '.join(unresolved)}",
            )

        if len(resolved) != len(REQUIRED_CATEGORIES) or set(resolved) != set(REQUIRED_CATEGORIES):
            missing = tuple(c for c in REQUIRED_CATEGORIES if c not in resolved)
            return Evaluation(
                outcome=EvaluationOutcome.UNRESOLVED_CATEGORY,
                total_price=total,
                unresolved=missing,
                reason="incomplete build",
            )

        band = state["band"]
        if not band.contains(total):
            return Evaluation(
                outcome=EvaluationOutcome.BUDGET_OUT_OF_RANGE,
                total_price=total,
                reason=f"total {total} outside {band.lower}..{band.upper}",
            )
        return Evaluation(outcome=EvaluationOutcome.ACCEPTED, total_price=total)

    def route_after_evaluation(self, state: NegotiationState):
        if state["evaluation"].accepted:
            return "accepted"
        if state["attempt"] >= self.max_attempts:
            return "exhausted"
        return "retry"

    def retry(self, state: NegotiationState):
        follow_up: Message = {"role": "user", "content": self.corrective_prompt(state)}
        if self.history_mode == "cumulative":
            conversation = list(state["conversation"])
            conversation.append({"role": "assistant", "content": state.get("reply", "")})
            conversation.append(follow_up)
        else:
            conversation = [follow_up]
        return {"conversation": conversation}

    # === Prompt 构造 ===

    def initial_prompt(self, budget: int, band: ToleranceBand) -> str:
        return INITIAL_BUILD_PROMPT.format(budget=budget, lower=band.lower, upper=band.upper)

    def corrective_prompt(self, state: NegotiationState) -> str:
        evaluation = state["evaluation"]
        band = state["band"]
        budget = state["budget"]
        categories = ", ".join(REQUIRED_CATEGORIES)

        if evaluation.outcome is EvaluationOutcome.MALFORMED_PROPOSAL:
            return FIX_FORMAT_PROMPT.format(
                reason=evaluation.reason,
                categories=categories,
                budget=budget,
                lower=band.lower,
                upper=band.upper,
            )

        resolved = state.get("resolved", {})
        proposal = state.get("proposal", {})
        component_lines = "\n".join(
            f"- {category}: {resolved[category].product.title} "
            f"(you asked for \"{proposal.get(category, '')}\"), {resolved[category].product.price} KZT"
            for category in REQUIRED_CATEGORIES
            if category in resolved
        )
        unresolved_line = ""
        if evaluation.unresolved:
            unresolved_line = UNRESOLVED_LINE.format(categories=", ".join(evaluation.unresolved))

        total = evaluation.total_price
        direction = price_direction(total, band)
        if direction == "raise":
            direction_text = DIRECTION_RAISE.format(gap=band.lower - total)
        elif direction == "lower":
            direction_text = DIRECTION_LOWER.format(gap=total - band.upper)
        else:
            direction_text = DIRECTION_KEEP

        return FIX_PRICE_PROMPT.format(
            component_lines=component_lines or "- (no component was found in the catalog)",
            unresolved_line=unresolved_line,
            total=total,
            lower=band.lower,
            upper=band.upper,
            budget=budget,
            direction=direction_text,
            categories=categories,
        )

    # === 入口 ===

    def generate(self, budget: int, catalog: Optional[Catalog] = None) -> NegotiationResult:
        """
        协商一套预算内的配置 - Negotiate a Budget-conformant Build

        参数 Parameters:
            budget: 用户预算（坚戈，正整数）
                    User budget (KZT, positive integer)
            catalog: 可选的目录视图，默认使用注入的目录
                     Optional catalog view, defaults to the injected catalog

        返回 Returns:
            被接受的配置、原始提议、总价与尝试次数
            The accepted build, the raw proposal, total price and attempt count

        异常 Raises:
            NegotiationExhausted: 达到最大尝试次数仍未接受
                                  attempt cap reached without acceptance
            OracleTransportError: 与模型通信失败（不重试）
                                  oracle call failed (never retried)
        """
        if isinstance(budget, bool) or not isinstance(budget, int) or budget <= 0:
            raise ValueError(f"budget must be a positive integer, got {budget!r}")

        negotiator = self if catalog is None else self._with_catalog(catalog)
        band = negotiator.tolerance.band_for(budget)
        initial: NegotiationState = {
            "budget": budget,
            "band": band,
            "attempt": 0,
            "conversation": [{"role": "user", "content": negotiator.initial_prompt(budget, band)}],
        }
        start = time.time()
        # 每轮最多经过 5 个节点
        out = negotiator.graph.invoke(
            initial,
            config={"recursion_limit": negotiator.max_attempts * 5 + 5},
        )
        evaluation: Evaluation = out["evaluation"]
        logger.info(
            "[PERF] negotiation for budget %d finished after %d attempts in %.3fs (%s)",
            budget,
            out["attempt"],
            time.time() - start,
            evaluation.outcome.value,
        )
        if not evaluation.accepted:
            raise NegotiationExhausted(
                attempts=out["attempt"],
                last_outcome=evaluation.outcome.value,
                detail=evaluation.reason,
            )
        return NegotiationResult(
            proposal=out["proposal"],
            resolved=out["resolved"],
            total_price=evaluation.total_price,
            budget=budget,
            band=band,
            attempts=out["attempt"],
        )

    def _with_catalog(self, catalog: Catalog) -> "BuildNegotiator":
        return BuildNegotiator(
            self.oracle,
            catalog,
            resolver=self.resolver,
            tolerance=self.tolerance,
            audit_sink=self.audit_sink,
            max_attempts=self.max_attempts,
            history_mode=self.history_mode,
        )
