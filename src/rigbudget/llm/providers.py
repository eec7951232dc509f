"""
聊天模型构建与调用节奏 - Chat Model Construction and Call Pacing

所有提供商都通过 OpenAI 兼容接口访问；密钥、模型与地址由 Settings 传入，
这里不读取环境变量。
Every provider is reached through an OpenAI-compatible endpoint. Key, model
and base URL come from Settings; nothing here reads the environment.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, TypeVar

from langchain_openai import ChatOpenAI

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_chat_model(
    api_key: Optional[str],
    model: str,
    temperature: float,
    base_url: Optional[str] = None,
    max_retries: int = 0,
) -> Optional[ChatOpenAI]:
    """
    构建聊天模型 - Build Chat Model

    返回 Returns:
        ChatOpenAI 实例；没有密钥时返回 None，由调用方报告 not_configured
        ChatOpenAI instance, or None without a key so the caller can report
        not_configured
    """
    if not api_key:
        return None
    kwargs = {}
    if base_url:
        kwargs["base_url"] = base_url
    return ChatOpenAI(
        model=model,
        temperature=temperature,
        api_key=api_key,
        timeout=None,
        max_retries=max_retries,
        **kwargs,
    )


class RateLimiter:
    """
    调用间隔控制 - Minimum Call Spacing

    共用同一个 oracle 的协商与 FPS 查询按同一节奏排队。
    Build negotiations and FPS queries sharing one oracle queue on the same
    cadence.
    """

    def __init__(self, min_interval_seconds: float):
        self.min_interval_seconds = min_interval_seconds
        self._lock = threading.Lock()
        self._next_slot = 0.0

    def wait(self) -> float:
        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.min_interval_seconds
        delay = max(0.0, slot - time.monotonic())
        if delay > 0:
            logger.debug("[PERF] rate limit wait %.3fs", delay)
            time.sleep(delay)
        return delay


def call_with_timeout(fn: Callable[[], T], timeout_seconds: Optional[float] = None) -> T:
    """
    限时调用 - Call with Turn Timeout

    超时后放弃等待并抛出 TimeoutError；后台线程自行结束。
    On timeout stop waiting and raise TimeoutError; the worker thread finishes
    on its own.
    """
    start = time.time()
    if not timeout_seconds:
        value = fn()
        logger.info("[PERF] oracle call took %.3fs", time.time() - start)
        return value

    outcome = {}

    def worker():
        try:
            outcome["value"] = fn()
        except Exception as err:
            outcome["error"] = err

    thread = threading.Thread(target=worker, daemon=True)
    thread.start()
    thread.join(timeout=timeout_seconds)
    if thread.is_alive():
        logger.warning("[PERF] oracle call abandoned after %.3fs", time.time() - start)
        raise TimeoutError(f"oracle call timed out after {timeout_seconds}s")
    if "error" in outcome:
        raise outcome["error"]
    logger.info("[PERF] oracle call took %.3fs", time.time() - start)
    return outcome["value"]
