from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Literal, NamedTuple, Optional

ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CATALOG_PATH = ROOT / "data" / "products.json"

TolerancePolicy = Literal["percentage", "absolute"]
HistoryMode = Literal["replace", "cumulative"]
Provider = Literal["openai", "openrouter", "zhipu"]


class _ProviderEnv(NamedTuple):
    key: str
    model: str
    default_model: str
    base_url: str
    default_base_url: Optional[str]


# 各提供商都走 OpenAI 兼容接口，只是密钥、模型与地址不同
_PROVIDER_ENV: Dict[str, _ProviderEnv] = {
    "openai": _ProviderEnv("OPENAI_API_KEY", "OPENAI_MODEL", "gpt-4o", "OPENAI_BASE_URL", None),
    "openrouter": _ProviderEnv(
        "OPENROUTER_API_KEY",
        "OPENROUTER_MODEL",
        "openrouter/free",
        "OPENROUTER_BASE_URL",
        "https://openrouter.ai/api/v1",
    ),
    "zhipu": _ProviderEnv(
        "ZHIPU_API_KEY",
        "ZHIPU_MODEL",
        "glm-4.7-flash",
        "ZHIPU_BASE_URL",
        "https://open.bigmodel.cn/api/paas/v4/",
    ),
}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_choice(name: str, choices: set[str], default: str) -> str:
    raw = (os.getenv(name) or "").strip().lower()
    return raw if raw in choices else default


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = (os.getenv(name) or "").strip()
    return raw or default


@dataclass(frozen=True)
class Settings:
    catalog_path: Path = DEFAULT_CATALOG_PATH
    audit_db_path: Optional[Path] = None

    max_attempts: int = 20
    tolerance_policy: TolerancePolicy = "percentage"
    tolerance_percent: float = 0.10
    tolerance_absolute: int = 90000
    history_mode: HistoryMode = "replace"

    resolver_threshold: float = 0.5
    resolver_category_filter: bool = False

    llm_provider: Provider = "openai"
    llm_api_key: Optional[str] = field(default=None, repr=False)
    llm_model: str = "gpt-4o"
    llm_base_url: Optional[str] = None
    llm_temperature: float = 0.7
    llm_max_retries: int = 0
    llm_turn_timeout_seconds: Optional[float] = None
    llm_rate_limit_enabled: bool = False
    llm_min_interval_seconds: float = 1.0

    @classmethod
    def from_env(cls) -> "Settings":
        catalog_raw = (os.getenv("CATALOG_PATH") or "").strip()
        audit_raw = (os.getenv("AUDIT_DB_PATH") or "").strip()
        threshold = _env_float("RESOLVER_THRESHOLD", 0.5)
        provider = _env_choice("LLM_PROVIDER", set(_PROVIDER_ENV), "openai")
        provider_env = _PROVIDER_ENV[provider]
        return cls(
            catalog_path=Path(catalog_raw) if catalog_raw else DEFAULT_CATALOG_PATH,
            audit_db_path=Path(audit_raw) if audit_raw else None,
            max_attempts=max(1, _env_int("NEGOTIATION_MAX_ATTEMPTS", 20)),
            tolerance_policy=_env_choice(
                "BUDGET_TOLERANCE_POLICY", {"percentage", "absolute"}, "percentage"
            ),
            tolerance_percent=_env_float("BUDGET_TOLERANCE_PERCENT", 0.10),
            tolerance_absolute=max(0, _env_int("BUDGET_TOLERANCE_ABSOLUTE", 90000)),
            history_mode=_env_choice("NEGOTIATION_HISTORY_MODE", {"replace", "cumulative"}, "replace"),
            resolver_threshold=min(1.0, max(0.0, threshold)),
            resolver_category_filter=_env_bool("RESOLVER_CATEGORY_FILTER", False),
            llm_provider=provider,
            llm_api_key=_env_str(provider_env.key),
            llm_model=_env_str(provider_env.model, provider_env.default_model),
            llm_base_url=_env_str(provider_env.base_url, provider_env.default_base_url),
            llm_temperature=_env_float("LLM_TEMPERATURE", 0.7),
            llm_max_retries=max(0, _env_int("LLM_MAX_RETRIES", 0)),
            llm_turn_timeout_seconds=_env_float("LLM_TURN_TIMEOUT_SECONDS", None),
            llm_rate_limit_enabled=_env_bool("LLM_RATE_LIMIT_ENABLED", False),
            llm_min_interval_seconds=max(0.0, _env_float("LLM_MIN_INTERVAL_SECONDS", 1.0)),
        )
