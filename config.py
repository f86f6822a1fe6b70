"""Configuration management for the document-edit relay."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    """Get boolean environment variable with fallback."""
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    """Get float environment variable with fallback."""
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    """Get integer environment variable with fallback."""
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v.strip())
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    """Get string environment variable with fallback."""
    v = os.getenv(name)
    if v is None:
        return default
    return v


def _env_secret(name: str) -> Optional[str]:
    """Get secret environment variable; blank counts as missing."""
    v = (os.getenv(name) or "").strip()
    return v or None


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    # Upstream credential; None means not configured
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"

    # Completion payload constants
    model: str = "gpt-4o"
    max_output_tokens: int = 4000
    temperature: float = 0.3

    # Leaves room for the prompt, system message and output under a 30k TPM tier
    max_content_tokens: int = 22000

    request_timeout_s: float = 120.0

    # Carry partial lines across upstream chunk boundaries
    stream_line_reassembly: bool = False
    # Stack traces, error names and upstream bodies in error responses
    expose_internal_errors: bool = True

    # Server settings
    port: int = 8000
    log_level: str = "INFO"
    log_path: str = ""
    user_agent: str = "docedit-relay/1.0.0"

    @property
    def has_api_key(self) -> bool:
        return self.openai_api_key is not None

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables."""
        return cls(
            openai_api_key=_env_secret("OPENAI_API_KEY"),
            openai_base_url=_env_str("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/"),
            model=_env_str("OPENAI_MODEL", "gpt-4o"),
            max_output_tokens=_env_int("MAX_OUTPUT_TOKENS", 4000),
            temperature=_env_float("TEMPERATURE", 0.3),
            max_content_tokens=_env_int("MAX_CONTENT_TOKENS", 22000),
            request_timeout_s=_env_float("REQUEST_TIMEOUT_S", 120.0),
            stream_line_reassembly=_env_bool("STREAM_LINE_REASSEMBLY", False),
            expose_internal_errors=_env_bool("EXPOSE_INTERNAL_ERRORS", True),
            port=_env_int("PORT", 8000),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper().strip(),
            log_path=_env_str("LOG_PATH", ""),
            user_agent=_env_str("USER_AGENT", "docedit-relay/1.0.0"),
        )

    def validate(self, require_api_key: bool = False) -> None:
        """Validate configuration.

        The credential is not required by default: its absence is reported per
        request as a configuration error rather than failing at startup.
        """
        if require_api_key and not self.has_api_key:
            raise ValueError("OPENAI_API_KEY is required")
        if not self.openai_base_url:
            raise ValueError("OPENAI_BASE_URL must be non-empty")
        if not self.model:
            raise ValueError("OPENAI_MODEL must be non-empty")
        if self.max_output_tokens <= 0:
            raise ValueError("MAX_OUTPUT_TOKENS must be > 0")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("TEMPERATURE must be within [0, 2]")
        if self.max_content_tokens <= 0:
            raise ValueError("MAX_CONTENT_TOKENS must be > 0")
        if self.request_timeout_s <= 0:
            raise ValueError("REQUEST_TIMEOUT_S must be > 0")
        if not self.user_agent:
            raise ValueError("USER_AGENT must be non-empty")


def load_config() -> AppConfig:
    """Load configuration from environment."""
    return AppConfig.from_env()
