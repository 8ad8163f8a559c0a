# src/batch_ai_pr_reviewer/plugin_config.py
import os
import logging
from dataclasses import dataclass, field
from typing import Optional, List

logger = logging.getLogger(__name__)

# Default values for optional parameters
DEFAULT_SCM_API_URL = "https://api.github.com"
DEFAULT_LLM_TIMEOUT = 300.0
DEFAULT_SCM_TIMEOUT = 30.0
DEFAULT_EXCLUDE_PATTERNS = ""
DEFAULT_LOG_LEVEL = "INFO"

REVIEW_MODE_BATCH = "batch"
REVIEW_MODE_PER_FILE = "per_file"
VALID_REVIEW_MODES = (REVIEW_MODE_BATCH, REVIEW_MODE_PER_FILE)
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _first_env(*names: str) -> Optional[str]:
    """Returns the first non-empty value among the given environment variables."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_exclude_patterns(raw: Optional[str]) -> List[str]:
    return [p.strip() for p in (raw or "").split(",") if p.strip()]


@dataclass
class PluginConfig:
    """
    Holds all configuration for the AI PR Reviewer, primarily sourced from PLUGIN_
    prefixed environment variables. GitHub Actions style fallbacks (GITHUB_TOKEN,
    OPENAI_API_KEY, INPUT_EXCLUDE) are honoured where the PLUGIN_ variable is unset.
    """

    # --- Core LLM Settings ---
    llm_model: Optional[str] = field(
        default_factory=lambda: os.getenv("PLUGIN_LLM_MODEL")
    )
    # Model used for the structural correction pass; falls back to llm_model
    llm_format_model: Optional[str] = field(
        default_factory=lambda: os.getenv("PLUGIN_LLM_FORMAT_MODEL")
    )
    llm_api_key: Optional[str] = field(
        default_factory=lambda: _first_env("PLUGIN_LLM_API_KEY", "OPENAI_API_KEY")
    ) # Handled as a secret by CI
    llm_api_base: Optional[str] = field(
        default_factory=lambda: os.getenv("PLUGIN_LLM_API_BASE")
    )

    # --- Optional LLM Parameters (only sent when set; reasoning models reject some) ---
    temperature: Optional[float] = field(
        default_factory=lambda: _optional_float("PLUGIN_TEMPERATURE")
    )
    max_tokens: Optional[int] = field(
        default_factory=lambda: _optional_int("PLUGIN_MAX_TOKENS")
    )
    llm_timeout: float = field(
        default_factory=lambda: float(os.getenv("PLUGIN_LLM_TIMEOUT") or DEFAULT_LLM_TIMEOUT)
    )

    # --- Optional Provider-Specific Configuration ---
    azure_api_version: Optional[str] = field(
        default_factory=lambda: os.getenv("PLUGIN_AZURE_API_VERSION")
    )
    vertex_project: Optional[str] = field(
        default_factory=lambda: os.getenv("PLUGIN_VERTEXAI_PROJECT")
    )
    vertex_location: Optional[str] = field(
        default_factory=lambda: os.getenv("PLUGIN_VERTEXAI_LOCATION")
    )
    aws_region_name: Optional[str] = field(
        default_factory=lambda: os.getenv("PLUGIN_AWS_REGION_NAME")
    )

    # --- SCM Settings ---
    scm_token: Optional[str] = field(
        default_factory=lambda: _first_env("PLUGIN_SCM_TOKEN", "GITHUB_TOKEN")
    ) # Handled as a secret by CI
    scm_api_url: str = field(
        default_factory=lambda: os.getenv("PLUGIN_SCM_API_URL") or DEFAULT_SCM_API_URL
    )
    scm_timeout: float = field(
        default_factory=lambda: float(os.getenv("PLUGIN_SCM_TIMEOUT") or DEFAULT_SCM_TIMEOUT)
    )

    # --- Plugin Behavior ---
    exclude_patterns: List[str] = field(
        default_factory=lambda: parse_exclude_patterns(
            _first_env("PLUGIN_EXCLUDE_PATTERNS", "INPUT_EXCLUDE") or DEFAULT_EXCLUDE_PATTERNS
        )
    )
    review_mode: str = field(
        default_factory=lambda: (os.getenv("PLUGIN_REVIEW_MODE") or REVIEW_MODE_BATCH).strip().lower()
    )
    lenient_diff_parsing: bool = field(
        default_factory=lambda: _env_flag("PLUGIN_LENIENT_DIFF_PARSING")
    )
    log_level: str = field(
        default_factory=lambda: (os.getenv("PLUGIN_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    )

    # --- CI Event Source ---
    github_event_path: Optional[str] = field(
        default_factory=lambda: os.getenv("GITHUB_EVENT_PATH")
    )

    def __post_init__(self):
        if not self.llm_format_model:
            self.llm_format_model = self.llm_model

        if self.log_level not in VALID_LOG_LEVELS:
            logger.warning(f"Invalid PLUGIN_LOG_LEVEL '{self.log_level}'. Defaulting to '{DEFAULT_LOG_LEVEL}'.")
            self.log_level = DEFAULT_LOG_LEVEL

        if self.review_mode not in VALID_REVIEW_MODES:
            logger.warning(f"Invalid PLUGIN_REVIEW_MODE '{self.review_mode}'. Defaulting to '{REVIEW_MODE_BATCH}'.")
            self.review_mode = REVIEW_MODE_BATCH


def load_plugin_config() -> PluginConfig:
    """
    Factory function to create and return a PluginConfig instance.
    """
    return PluginConfig()
