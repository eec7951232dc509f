"""LLM 模块：Oracle 适配、模型构建与 Prompt"""

from .oracle import ChatOracle, Message, Oracle
from .providers import RateLimiter, build_chat_model, call_with_timeout
from .prompts import BUILD_SYSTEM_PROMPT, FPS_SYSTEM_PROMPT

__all__ = [
    "ChatOracle",
    "Message",
    "Oracle",
    "RateLimiter",
    "build_chat_model",
    "call_with_timeout",
    "BUILD_SYSTEM_PROMPT",
    "FPS_SYSTEM_PROMPT",
]
