# trivia_generator/config.py
# Configuration system for the trivia question generator

"""
Configuration Management

Loads all environment variables once at module import.
Provides typed, immutable configuration objects.
No runtime env reads anywhere else in the package.

Usage:
    from trivia_generator.config import APP_CONFIG

    batch_size = APP_CONFIG.generation.batch_size
    brave_key = APP_CONFIG.search.api_key
    model = APP_CONFIG.llm_profiles['generator']['model']
"""

import os
import sys
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


# ============================================================================
# Helper Functions
# ============================================================================

def _env(key: str, default: str = "") -> str:
    """Get string environment variable."""
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    value = os.environ.get(key, "").lower()
    if value in ("1", "true", "yes", "on"):
        return True
    elif value in ("0", "false", "no", "off"):
        return False
    return default


# ============================================================================
# Configuration Dataclasses
# ============================================================================

@dataclass(frozen=True)
class DatabaseConfig:
    """MongoDB question store configuration."""
    uri: str
    db_name: str
    questions_collection: str
    connection_timeout_ms: int
    server_selection_timeout_ms: int


@dataclass(frozen=True)
class SearchConfig:
    """Brave Search configuration for the fact source."""
    api_key: str
    base_url: str
    timeout: float
    max_results: Optional[int]


@dataclass(frozen=True)
class ProviderConfig:
    """Configuration for a specific LLM provider."""
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = 120.0
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GenerationConfig:
    """Batch generation loop configuration (delays in milliseconds)."""
    batch_size: int
    warmup_items: int
    item_delay_min_ms: int
    item_delay_max_ms: int
    item_delay_factor: float
    item_error_cooldown_ms: int
    batch_delay_min_ms: int
    batch_delay_per_failure_ms: int
    batch_error_cooldown_ms: int
    checkpoint_every_batches: int
    track_stats: bool
    stats_path: str
    fact_chars: int
    cost_per_question: float
    seed_from_store: bool
    llm_profile: str


@dataclass(frozen=True)
class LoggingConfig:
    """Log output configuration."""
    level: str
    log_file: Optional[str]
    max_bytes: int
    backup_count: int


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""

    # Question store
    database: DatabaseConfig

    # Fact source
    search: SearchConfig

    # LLM providers and named profiles
    providers: Dict[str, ProviderConfig]
    llm_profiles: Dict[str, Dict[str, Any]]

    # Generation loop
    generation: GenerationConfig

    # Application
    logging: LoggingConfig
    debug_mode: bool


# ============================================================================
# Configuration Loader
# ============================================================================

class ConfigLoader:
    """Loads configuration from environment variables."""

    @staticmethod
    def from_env() -> AppConfig:
        """Load complete configuration from environment."""

        # --- Database Configuration ---
        database = DatabaseConfig(
            uri=_env("MONGO_URI", "mongodb://localhost:27017"),
            db_name=_env("MONGO_DB_NAME", "trivia"),
            questions_collection=_env("QUESTIONS_COLLECTION", "trivia_questions"),
            connection_timeout_ms=_env_int("MONGO_CONNECT_TIMEOUT_MS", 5000),
            server_selection_timeout_ms=_env_int("MONGO_SERVER_TIMEOUT_MS", 5000)
        )

        # --- Search Configuration ---
        max_results = _env_int("SEARCH_MAX_RESULTS", 0)
        search = SearchConfig(
            api_key=_env("BRAVE_API_KEY", ""),
            base_url=_env("BRAVE_SEARCH_URL", "https://api.search.brave.com/res/v1/web/search"),
            timeout=_env_float("SEARCH_TIMEOUT", 15.0),
            max_results=max_results if max_results > 0 else None
        )

        # --- Provider Configurations ---
        providers = {
            "anthropic": ProviderConfig(
                base_url=_env("ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1"),
                api_key=_env("CLAUDE_API_KEY") or _env("ANTHROPIC_API_KEY", ""),
                timeout=_env_float("ANTHROPIC_TIMEOUT", 60.0),
                options={
                    "anthropic_version": _env("ANTHROPIC_VERSION", "2023-06-01"),
                }
            ),
            "openai": ProviderConfig(
                base_url=_env("OPENAI_BASE_URL", "https://api.openai.com/v1"),
                api_key=_env("OPENAI_API_KEY", ""),
                timeout=_env_float("OPENAI_TIMEOUT", 30.0),
                options={}
            ),
            "ollama": ProviderConfig(
                base_url=_env("OLLAMA_BASE_URL", "http://localhost:11434"),
                timeout=_env_float("OLLAMA_TIMEOUT", 120.0),
                options={
                    "num_ctx": _env_int("OLLAMA_NUM_CTX", 8192),
                    "repeat_penalty": _env_float("OLLAMA_REPEAT_PENALTY", 1.1),
                }
            ),
        }

        # --- LLM Profiles ---
        llm_profiles = {
            # Question writer used by both search-augmented and direct generation
            "generator": {
                "provider": _env("LLM_PROVIDER", "anthropic"),
                "model": _env("LLM_MODEL", "claude-3-sonnet-20240229"),
                "temperature": _env_float("LLM_TEMPERATURE", 0.7),
                "max_tokens": _env_int("LLM_MAX_TOKENS", 1000),
                "timeout": _env_float("LLM_TIMEOUT", 60.0),
            },

            # Local model for offline runs
            "local": {
                "provider": "ollama",
                "model": _env("LLM_LOCAL_MODEL", "mistral"),
                "temperature": 0.7,
                "max_tokens": 1000,
                "timeout": 120.0,
            },
        }

        # --- Generation Configuration ---
        generation = GenerationConfig(
            batch_size=_env_int("GENERATION_BATCH_SIZE", 5),
            warmup_items=_env_int("GENERATION_WARMUP_ITEMS", 20),
            item_delay_min_ms=_env_int("GENERATION_ITEM_DELAY_MIN_MS", 2000),
            item_delay_max_ms=_env_int("GENERATION_ITEM_DELAY_MAX_MS", 5000),
            item_delay_factor=_env_float("GENERATION_ITEM_DELAY_FACTOR", 0.5),
            item_error_cooldown_ms=_env_int("GENERATION_ITEM_ERROR_COOLDOWN_MS", 8000),
            batch_delay_min_ms=_env_int("GENERATION_BATCH_DELAY_MIN_MS", 3000),
            batch_delay_per_failure_ms=_env_int("GENERATION_BATCH_DELAY_PER_FAILURE_MS", 1000),
            batch_error_cooldown_ms=_env_int("GENERATION_BATCH_ERROR_COOLDOWN_MS", 15000),
            checkpoint_every_batches=_env_int("GENERATION_CHECKPOINT_EVERY", 5),
            track_stats=_env_bool("GENERATION_TRACK_STATS", True),
            stats_path=_env("GENERATION_STATS_PATH", "generation-stats.json"),
            fact_chars=_env_int("GENERATION_FACT_CHARS", 1500),
            cost_per_question=_env_float("GENERATION_COST_PER_QUESTION", 0.04),
            seed_from_store=_env_bool("GENERATION_SEED_FROM_STORE", False),
            llm_profile=_env("GENERATION_LLM_PROFILE", "generator"),
        )

        # --- Logging Configuration ---
        logging_config = LoggingConfig(
            level=_env("LOG_LEVEL", "INFO").upper(),
            log_file=_env("LOG_FILE", "logs/trivia_generator.log") or None,
            max_bytes=_env_int("LOG_MAX_BYTES", 1048576),
            backup_count=_env_int("LOG_BACKUP_COUNT", 5),
        )

        # --- Application Configuration ---
        debug_mode = _env_bool("DEBUG_MODE", False)

        return AppConfig(
            database=database,
            search=search,
            providers=providers,
            llm_profiles=llm_profiles,
            generation=generation,
            logging=logging_config,
            debug_mode=debug_mode
        )


# ============================================================================
# Global Configuration Instance
# ============================================================================

# Load configuration once at module import
APP_CONFIG = ConfigLoader.from_env()


# ============================================================================
# Exports
# ============================================================================

__all__ = [
    "APP_CONFIG",
    "AppConfig",
    "ConfigLoader",
    "DatabaseConfig",
    "SearchConfig",
    "ProviderConfig",
    "GenerationConfig",
    "LoggingConfig",
]


# ============================================================================
# Configuration Validation (Run on Import)
# ============================================================================

def _validate_config():
    """Validate critical configuration at startup."""
    issues = []

    if not APP_CONFIG.search.api_key:
        issues.append("BRAVE_API_KEY not set - questions will use direct generation without search facts")

    profile = APP_CONFIG.llm_profiles.get("generator", {})
    provider = profile.get("provider")
    if provider in ("anthropic", "openai") and not APP_CONFIG.providers[provider].api_key:
        issues.append(f"API key for '{provider}' not set but 'generator' profile uses it")

    if APP_CONFIG.generation.batch_size <= 0:
        issues.append("GENERATION_BATCH_SIZE must be positive")

    if issues and APP_CONFIG.debug_mode:
        sys.stderr.write("\n⚠️  Configuration Issues:\n")
        for issue in issues:
            sys.stderr.write(f"   - {issue}\n")
        sys.stderr.write("\n")


_validate_config()
