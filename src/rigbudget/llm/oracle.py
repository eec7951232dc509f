"""
文本生成 Oracle 适配 - Text-generation Oracle Adapter

协商循环只依赖 complete(system_instructions, conversation) -> str；
ChatOracle 用 langchain 聊天模型实现它，并把所有调用失败统一为
OracleTransportError。
The negotiation loop depends only on complete(system_instructions,
conversation) -> str. ChatOracle implements it on a langchain chat model and
turns every call failure into OracleTransportError.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional, Protocol, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from ..config import Settings
from ..errors import OracleTransportError, classify_transport_error
from .providers import RateLimiter, build_chat_model, call_with_timeout

Message = Dict[str, str]

_AUTO_LLM = object()


class Oracle(Protocol):
    def complete(self, system_instructions: str, conversation: Sequence[Message]) -> str: ...


def to_langchain_messages(system_instructions: str, conversation: Sequence[Message]) -> List[BaseMessage]:
    messages: List[BaseMessage] = [SystemMessage(content=system_instructions)]
    for item in conversation:
        role = item.get("role", "user")
        content = item.get("content", "")
        if role == "assistant":
            messages.append(AIMessage(content=content))
        elif role == "system":
            messages.append(SystemMessage(content=content))
        else:
            messages.append(HumanMessage(content=content))
    return messages


def _content_text(content) -> str:
    if isinstance(content, str):
        return content
    # 多段内容只保留文本片段
    parts = []
    for chunk in content or []:
        if isinstance(chunk, str):
            parts.append(chunk)
        elif isinstance(chunk, dict) and chunk.get("type") == "text":
            parts.append(chunk.get("text", ""))
    return "".join(parts)


class ChatOracle:
    def __init__(
        self,
        provider: str = "openai",
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_retries: int = 0,
        timeout_seconds: Optional[float] = None,
        rate_limiter: Optional[RateLimiter] = None,
        llm=_AUTO_LLM,
    ):
        self.provider = provider
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.max_retries = max_retries
        self.timeout_seconds = timeout_seconds
        self.rate_limiter = rate_limiter
        self._llm = llm
        self._llm_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatOracle":
        limiter = RateLimiter(settings.llm_min_interval_seconds) if settings.llm_rate_limit_enabled else None
        return cls(
            provider=settings.llm_provider,
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            base_url=settings.llm_base_url,
            temperature=settings.llm_temperature,
            max_retries=settings.llm_max_retries,
            timeout_seconds=settings.llm_turn_timeout_seconds,
            rate_limiter=limiter,
        )

    def _runtime_llm(self):
        if self._llm is _AUTO_LLM:
            with self._llm_lock:
                if self._llm is _AUTO_LLM:
                    self._llm = build_chat_model(
                        self.api_key,
                        self.model,
                        self.temperature,
                        base_url=self.base_url,
                        max_retries=self.max_retries,
                    )
        return self._llm

    @property
    def configured(self) -> bool:
        return self._runtime_llm() is not None

    def _invoke(self, llm, messages):
        if self.rate_limiter is not None:
            self.rate_limiter.wait()
        return llm.invoke(messages)

    def complete(self, system_instructions: str, conversation: Sequence[Message]) -> str:
        llm = self._runtime_llm()
        if llm is None:
            raise OracleTransportError(
                f"no API key configured for provider '{self.provider}'",
                reason="not_configured",
            )
        messages = to_langchain_messages(system_instructions, conversation)
        try:
            reply = call_with_timeout(lambda: self._invoke(llm, messages), self.timeout_seconds)
        except Exception as err:
            raise OracleTransportError(str(err), reason=classify_transport_error(err)) from err
        return _content_text(getattr(reply, "content", reply))
