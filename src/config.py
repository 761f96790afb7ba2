"""
Centralized configuration with environment variable overrides.

LLM endpoint settings, session lifetimes, and business values are all
configurable here. Nothing is hardcoded in the orchestrator or tool logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from src.logging_context import add_conversation_id_to_handlers

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag ("1", "true", "yes", "on") from an env var."""
    raw = os.getenv(env_var, default)
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class BusinessConfig:
    """Business-specific settings loaded from environment or defaults."""

    name: str = os.getenv("BUSINESS_NAME", "Embler")
    city: str = os.getenv("BUSINESS_CITY", "la Ciudad de México")


@dataclass(frozen=True)
class LLMConfig:
    """Chat-completions endpoint and sampling settings."""

    api_key: str = os.getenv("OPENROUTER_API_KEY", "")
    base_url: str = os.getenv("LLM_BASE_URL", "https://openrouter.ai/api/v1")
    model: str = os.getenv("LLM_MODEL", "google/gemini-2.5-flash-lite-preview-06-17")
    temperature: float = _safe_float("LLM_TEMPERATURE", "0.7")
    max_tokens: int = _safe_int("LLM_MAX_TOKENS", "1000")
    timeout_ms: int = _safe_int("LLM_TIMEOUT_MS", "30000")
    top_p: float = _safe_float("LLM_TOP_P", "1.0")
    frequency_penalty: float = _safe_float("LLM_FREQUENCY_PENALTY", "0.0")
    presence_penalty: float = _safe_float("LLM_PRESENCE_PENALTY", "0.0")
    referer: str = os.getenv("LLM_HTTP_REFERER", "http://localhost:3002")
    app_title: str = os.getenv("LLM_APP_TITLE", "Embler WhatsApp Chatbot")


@dataclass(frozen=True)
class SessionConfig:
    """Conversation session lifetime and context-window settings."""

    session_timeout_sec: int = _safe_int("SESSION_TIMEOUT_SEC", "1800")
    sweep_interval_sec: int = _safe_int("SESSION_SWEEP_INTERVAL_SEC", "300")
    history_window: int = _safe_int("HISTORY_WINDOW", "8")
    conversation_prefix: str = os.getenv("CONVERSATION_PREFIX", "wa")
    serialize_turns: bool = _safe_bool("SERIALIZE_TURNS", "true")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges.

    A missing API key is not an error here: the LLM client reports it through
    ``validate_config()`` so offline tooling can still import the settings.
    """
    if not 0.0 <= config.llm.temperature <= 2.0:
        raise ValueError(
            f"LLM_TEMPERATURE must be between 0.0 and 2.0, got {config.llm.temperature}"
        )
    if config.llm.max_tokens <= 0:
        raise ValueError(f"LLM_MAX_TOKENS must be > 0, got {config.llm.max_tokens}")
    if config.llm.timeout_ms <= 0:
        raise ValueError(f"LLM_TIMEOUT_MS must be > 0, got {config.llm.timeout_ms}")
    if not 0.0 <= config.llm.top_p <= 1.0:
        raise ValueError(f"LLM_TOP_P must be between 0.0 and 1.0, got {config.llm.top_p}")
    if config.session.session_timeout_sec < 1:
        raise ValueError(
            f"SESSION_TIMEOUT_SEC must be >= 1, got {config.session.session_timeout_sec}"
        )
    if config.session.sweep_interval_sec < 1:
        raise ValueError(
            "SESSION_SWEEP_INTERVAL_SEC must be >= 1, "
            f"got {config.session.sweep_interval_sec}"
        )
    if config.session.history_window < 1:
        raise ValueError(
            f"HISTORY_WINDOW must be >= 1, got {config.session.history_window}"
        )
    if not config.session.conversation_prefix.strip():
        raise ValueError("CONVERSATION_PREFIX must not be empty")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(conversation_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    add_conversation_id_to_handlers()
    logger.info("Configuration loaded for '%s' (model %s)", config.business.name, config.llm.model)
    return config


# Singleton instance
settings = load_config()
