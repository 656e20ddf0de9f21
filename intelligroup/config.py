"""
Centralized configuration management.

Configuration is loaded from:
1. Environment variables
2. .env file (if present)
3. Default values

Usage:
    from intelligroup.config import get_config
    config = get_config()
    print(config.ai.provider)  # "google" unless AI_PROVIDER is set
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError


SUPPORTED_PROVIDERS = ("google", "openrouter")

DEFAULT_MODELS = {
    "google": "gemini-3-flash-preview",
    "openrouter": "google/gemini-3-pro-preview",
}

DEFAULT_BASE_URLS = {
    "google": "https://generativelanguage.googleapis.com/v1beta/openai/",
    "openrouter": "https://openrouter.ai/api/v1/",
}

# Provider-specific fallbacks for the API key when AI_API_KEY is unset
PROVIDER_KEY_ENV = {
    "google": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "openrouter": ("OPENROUTER_API_KEY",),
}


def _load_dotenv(dotenv_path: Optional[Path] = None) -> None:
    """
    Minimal .env loader (no external dependency).
    
    Supports KEY=VALUE, ignores blank lines and comments (#).
    Does not override existing environment variables.
    """
    if dotenv_path is None:
        dotenv_path = Path.cwd() / ".env"
    
    if not dotenv_path.exists() or not dotenv_path.is_file():
        return

    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if not key:
            continue
        if os.getenv(key) in (None, ""):
            os.environ[key] = value


def _get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key, "").strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: Optional[float] = None) -> Optional[float]:
    """Get float from environment variable."""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class AIConfig:
    """Vision model configuration for ballot field extraction."""
    provider: str = field(default_factory=lambda: os.getenv("AI_PROVIDER", "google").strip().lower())
    api_key: str = field(default_factory=lambda: os.getenv("AI_API_KEY", ""))
    model: str = field(default_factory=lambda: os.getenv("AI_MODEL", ""))
    base_url: str = field(default_factory=lambda: os.getenv("AI_BASE_URL", ""))
    timeout_sec: int = field(default_factory=lambda: _get_int_env("AI_TIMEOUT_SEC", 120))
    response_format: str = field(
        default_factory=lambda: os.getenv("AI_RESPONSE_FORMAT", "json_object").strip().lower()
    )
    
    # Retry configuration
    max_retries: int = field(default_factory=lambda: _get_int_env("AI_MAX_RETRIES", 2))
    retry_delay_sec: float = field(default_factory=lambda: _get_float_env("AI_RETRY_DELAY_SEC", 2.0) or 2.0)
    
    # Cost tracking
    input_cost_per_1m_usd: Optional[float] = field(
        default_factory=lambda: _get_float_env("AI_INPUT_COST_PER_1M_USD")
    )
    output_cost_per_1m_usd: Optional[float] = field(
        default_factory=lambda: _get_float_env("AI_OUTPUT_COST_PER_1M_USD")
    )
    
    def __post_init__(self):
        if self.provider not in SUPPORTED_PROVIDERS:
            supported = ", ".join(SUPPORTED_PROVIDERS)
            raise ConfigurationError(
                f"Unsupported AI provider: {self.provider!r}. Supported providers: {supported}",
                config_key="AI_PROVIDER",
            )
        if not self.model:
            self.model = DEFAULT_MODELS[self.provider]
        if not self.api_key:
            self.api_key = self._resolve_provider_key()
    
    def _resolve_provider_key(self) -> str:
        for env_name in PROVIDER_KEY_ENV[self.provider]:
            value = os.getenv(env_name, "").strip()
            if value:
                return value
        return ""
    
    @property
    def has_pricing(self) -> bool:
        return self.input_cost_per_1m_usd is not None or self.output_cost_per_1m_usd is not None
    
    def get_normalized_base_url(self) -> str:
        """
        Get normalized base_url for OpenAI SDK.
        
        The OpenAI SDK expects a *base* URL without the endpoint.
        Full chat-completions endpoints are trimmed back to the base.
        """
        u = (self.base_url or "").strip()
        if not u:
            return DEFAULT_BASE_URLS[self.provider]
        
        u = u.rstrip("/")
        if u.endswith("/chat/completions"):
            u = u[: -len("/chat/completions")]
        
        # Keep trailing slash for consistency
        return u.rstrip("/") + "/"
    
    def estimate_cost(self, input_tokens: int, output_tokens: int) -> Optional[float]:
        """Estimate cost in USD for given token counts."""
        if not self.has_pricing:
            return None
        
        cost = 0.0
        if self.input_cost_per_1m_usd:
            cost += (input_tokens / 1_000_000) * self.input_cost_per_1m_usd
        if self.output_cost_per_1m_usd:
            cost += (output_tokens / 1_000_000) * self.output_cost_per_1m_usd
        return cost


@dataclass
class RenderConfig:
    """Page rasterization configuration."""
    # 2.0 keeps small handwritten digits legible for the vision model
    scale: float = field(default_factory=lambda: _get_float_env("RENDER_SCALE", 2.0) or 2.0)
    jpeg_quality: int = field(default_factory=lambda: _get_int_env("JPEG_QUALITY", 85))


@dataclass
class ExportConfig:
    """CSV / PDF export configuration."""
    csv_delimiter: str = field(default_factory=lambda: os.getenv("CSV_DELIMITER", ";") or ";")
    pdf_page_width_pt: float = field(
        default_factory=lambda: _get_float_env("PDF_PAGE_WIDTH_PT", 595.28) or 595.28
    )


@dataclass
class Config:
    """
    Main application configuration.
    
    All settings are loaded from environment variables with sensible defaults.
    Set DEBUG=1 in environment to enable debug mode.
    """
    
    base_dir: Path = field(default_factory=Path.cwd)
    
    # Directory paths
    workspace_dir: Path = field(default=None)
    output_dir: Path = field(default=None)
    logs_dir: Path = field(default=None)
    
    # Debug mode (enables verbose logging and raw model response dumps)
    debug: bool = field(default_factory=lambda: _get_bool_env("DEBUG", False))
    
    # Sub-configurations
    ai: AIConfig = field(default_factory=AIConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    
    def __post_init__(self):
        """Resolve paths after initialization."""
        if self.workspace_dir is None:
            self.workspace_dir = self.base_dir / os.getenv("WORKSPACE_DIR", "workspace")
        if self.output_dir is None:
            self.output_dir = self.base_dir / os.getenv("OUTPUT_DIR", "output")
        if self.logs_dir is None:
            self.logs_dir = self.base_dir / os.getenv("LOG_DIR", "logs")
        
        self.workspace_dir = Path(self.workspace_dir)
        self.output_dir = Path(self.output_dir)
        self.logs_dir = Path(self.logs_dir)
    
    @property
    def dump_raw_responses(self) -> bool:
        """Whether to log raw model output (enabled in debug mode)."""
        return self.debug or _get_bool_env("DUMP_RAW_RESPONSES", False)


# Global config instance (lazily initialized)
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _load_dotenv()
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
