from pathlib import Path

from rigbudget.config import DEFAULT_CATALOG_PATH, Settings
from rigbudget.graph import BuildNegotiator

_VARS = [
    "CATALOG_PATH",
    "AUDIT_DB_PATH",
    "NEGOTIATION_MAX_ATTEMPTS",
    "BUDGET_TOLERANCE_POLICY",
    "BUDGET_TOLERANCE_PERCENT",
    "BUDGET_TOLERANCE_ABSOLUTE",
    "NEGOTIATION_HISTORY_MODE",
    "RESOLVER_THRESHOLD",
    "RESOLVER_CATEGORY_FILTER",
    "LLM_PROVIDER",
    "LLM_TEMPERATURE",
    "LLM_TURN_TIMEOUT_SECONDS",
    "LLM_MAX_RETRIES",
    "LLM_RATE_LIMIT_ENABLED",
    "LLM_MIN_INTERVAL_SECONDS",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_BASE_URL",
    "OPENROUTER_API_KEY",
    "OPENROUTER_MODEL",
    "OPENROUTER_BASE_URL",
    "ZHIPU_API_KEY",
    "ZHIPU_MODEL",
    "ZHIPU_BASE_URL",
]


def _clear(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    _clear(monkeypatch)

    settings = Settings.from_env()

    assert settings.catalog_path == DEFAULT_CATALOG_PATH
    assert settings.audit_db_path is None
    assert settings.max_attempts == 20
    assert settings.tolerance_policy == "percentage"
    assert settings.tolerance_percent == 0.10
    assert settings.tolerance_absolute == 90000
    assert settings.history_mode == "replace"
    assert settings.resolver_threshold == 0.5
    assert settings.resolver_category_filter is False
    assert settings.llm_turn_timeout_seconds is None
    assert settings.llm_api_key is None
    assert settings.llm_model == "gpt-4o"
    assert settings.llm_base_url is None
    assert settings.llm_max_retries == 0
    assert settings.llm_rate_limit_enabled is False
    assert settings.llm_min_interval_seconds == 1.0


def test_env_overrides(monkeypatch, tmp_path):
    _clear(monkeypatch)
    monkeypatch.setenv("CATALOG_PATH", str(tmp_path / "p.json"))
    monkeypatch.setenv("AUDIT_DB_PATH", str(tmp_path / "a.db"))
    monkeypatch.setenv("NEGOTIATION_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("BUDGET_TOLERANCE_POLICY", "Absolute")
    monkeypatch.setenv("NEGOTIATION_HISTORY_MODE", "cumulative")
    monkeypatch.setenv("RESOLVER_THRESHOLD", "0.7")
    monkeypatch.setenv("RESOLVER_CATEGORY_FILTER", "true")
    monkeypatch.setenv("LLM_PROVIDER", "openrouter")
    monkeypatch.setenv("LLM_TURN_TIMEOUT_SECONDS", "30")

    settings = Settings.from_env()

    assert settings.catalog_path == Path(tmp_path / "p.json")
    assert settings.audit_db_path == Path(tmp_path / "a.db")
    assert settings.max_attempts == 5
    assert settings.tolerance_policy == "absolute"
    assert settings.history_mode == "cumulative"
    assert settings.resolver_threshold == 0.7
    assert settings.resolver_category_filter is True
    assert settings.llm_provider == "openrouter"
    assert settings.llm_turn_timeout_seconds == 30.0


def test_bad_values_fall_back_to_defaults(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("NEGOTIATION_MAX_ATTEMPTS", "many")
    monkeypatch.setenv("BUDGET_TOLERANCE_POLICY", "both")
    monkeypatch.setenv("RESOLVER_THRESHOLD", "7")
    monkeypatch.setenv("LLM_PROVIDER", "unknown")

    settings = Settings.from_env()

    assert settings.max_attempts == 20
    assert settings.tolerance_policy == "percentage"
    assert settings.resolver_threshold == 1.0
    assert settings.llm_provider == "openai"


def test_provider_credentials_come_from_provider_variables(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("LLM_PROVIDER", "zhipu")
    monkeypatch.setenv("ZHIPU_API_KEY", "zk-test")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-ignored")
    monkeypatch.setenv("LLM_MAX_RETRIES", "3")
    monkeypatch.setenv("LLM_RATE_LIMIT_ENABLED", "true")
    monkeypatch.setenv("LLM_MIN_INTERVAL_SECONDS", "2.5")

    settings = Settings.from_env()

    assert settings.llm_api_key == "zk-test"
    assert settings.llm_model == "glm-4.7-flash"
    assert settings.llm_base_url == "https://open.bigmodel.cn/api/paas/v4/"
    assert settings.llm_max_retries == 3
    assert settings.llm_rate_limit_enabled is True
    assert settings.llm_min_interval_seconds == 2.5
    assert "zk-test" not in repr(settings)


def test_negotiator_from_settings(scenario_catalog):
    settings = Settings(
        max_attempts=4,
        tolerance_policy="absolute",
        tolerance_absolute=50000,
        history_mode="cumulative",
        resolver_threshold=0.8,
        resolver_category_filter=True,
    )

    negotiator = BuildNegotiator.from_settings(settings, oracle=None, catalog=scenario_catalog)

    assert negotiator.max_attempts == 4
    assert negotiator.history_mode == "cumulative"
    assert negotiator.tolerance.band_for(200000).lower == 150000
    assert negotiator.resolver.threshold == 0.8
    assert negotiator.resolver.category_filter is True
