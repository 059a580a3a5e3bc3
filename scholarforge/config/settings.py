"""Application settings and environment configuration."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
PROJECT_ROOT = Path(__file__).parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")

MOCK_LLM_MODES = ("mock", "fake", "offline")


def _env_float(name: str, default: float) -> float:
    """Read a non-negative float from the environment, falling back on bad input."""
    raw = os.getenv(name, "")
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _env_flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() not in ("0", "false", "off", "no")


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Chat-completion backend
    llm_mode: str = os.getenv("LLM_MODE", "live")
    llm_api_url: str = os.getenv("LLM_API_URL", "https://api.openai.com/v1/chat/completions")
    llm_api_key: str = os.getenv("LLM_API_KEY", "")
    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    llm_max_tokens: int = _env_int("LLM_MAX_TOKENS", 4096)
    llm_timeout_seconds: float = _env_float("LLM_TIMEOUT_SECONDS", 120.0)
    llm_max_retries: int = _env_int("LLM_MAX_RETRIES", 4)

    # Semantic Scholar
    semantic_scholar_api_key: str = os.getenv("SEMANTIC_SCHOLAR_API_KEY", "")
    semantic_scholar_base_url: str = os.getenv(
        "SEMANTIC_SCHOLAR_BASE_URL", "https://api.semanticscholar.org/graph/v1"
    )
    semantic_scholar_min_request_interval: float = _env_float(
        "SEMANTIC_SCHOLAR_MIN_REQUEST_INTERVAL", 1.1
    )
    semantic_scholar_cache_ttl: float = _env_float("SEMANTIC_SCHOLAR_CACHE_TTL", 600.0)  # 10 minutes
    semantic_scholar_max_retries: int = _env_int("SEMANTIC_SCHOLAR_MAX_RETRIES", 5)
    semantic_scholar_timeout_seconds: float = _env_float("SEMANTIC_SCHOLAR_TIMEOUT_SECONDS", 30.0)

    # Post-processing
    # Disable for deterministic runs; the length pass costs one extra model call.
    enforce_word_count: bool = _env_flag("ENFORCE_WORD_COUNT", "1")

    # LangSmith
    langsmith_api_key: str = os.getenv("LANGSMITH_API_KEY", "")
    langsmith_tracing: bool = os.getenv("LANGSMITH_TRACING", "false").lower() == "true"
    langsmith_project: str = os.getenv("LANGSMITH_PROJECT", "scholarforge")

    def __post_init__(self):
        """Configure LangSmith environment variables."""
        if self.langsmith_api_key:
            os.environ["LANGSMITH_API_KEY"] = self.langsmith_api_key
            os.environ["LANGSMITH_TRACING"] = str(self.langsmith_tracing).lower()
            os.environ["LANGSMITH_PROJECT"] = self.langsmith_project

    @property
    def use_mock_llm(self) -> bool:
        """Whether the model gateway should return canned content."""
        return self.llm_mode.strip().lower() in MOCK_LLM_MODES

    def validate(self) -> list[str]:
        """Validate required settings are present."""
        errors = []
        if not self.use_mock_llm and not self.llm_api_key:
            errors.append("LLM_API_KEY is not set (or set LLM_MODE=mock)")
        if not self.semantic_scholar_api_key:
            errors.append("SEMANTIC_SCHOLAR_API_KEY is not set; placeholder references will be used")
        return errors


# Global settings instance
settings = Settings()
