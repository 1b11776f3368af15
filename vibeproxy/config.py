"""Configuration loading and management."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from vibeproxy.constants import (
    DEFAULT_GITHUB_API_URL,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_PORT,
    DEFAULT_PROVIDER,
    DEFAULT_WEB_FETCH_CHARS,
)


@dataclass
class Config:
    """vibeproxy configuration.

    Loads from .env and the process environment.
    """

    # API Keys
    anthropic_api_key: Optional[str] = None
    ai_provider: str = DEFAULT_PROVIDER

    # Server settings
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL

    # Model settings
    default_model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS

    # Tool settings
    web_fetch_chars: int = DEFAULT_WEB_FETCH_CHARS

    # GitHub
    github_api_url: str = DEFAULT_GITHUB_API_URL

    # Chat persistence (Supabase/PostgREST)
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None

    # Agent run logs
    runs_dir: Optional[Path] = None

    @classmethod
    def load(cls, env_file: Optional[Path] = None) -> "Config":
        """Load configuration from .env and the environment.

        Args:
            env_file: Optional explicit .env path

        Returns:
            Config instance
        """
        load_dotenv(env_file)

        runs_dir = os.getenv("VIBEPROXY_RUNS_DIR")

        return cls(
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            ai_provider=os.getenv("AI_PROVIDER", DEFAULT_PROVIDER).lower(),
            host=os.getenv("HOST", DEFAULT_HOST),
            port=int(os.getenv("PORT", DEFAULT_PORT)),
            log_level=os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
            default_model=os.getenv("VIBEPROXY_DEFAULT_MODEL", DEFAULT_MODEL),
            max_tokens=int(os.getenv("VIBEPROXY_MAX_TOKENS", DEFAULT_MAX_TOKENS)),
            web_fetch_chars=int(os.getenv("VIBEPROXY_WEB_FETCH_CHARS", DEFAULT_WEB_FETCH_CHARS)),
            github_api_url=os.getenv("GITHUB_API_URL", DEFAULT_GITHUB_API_URL).rstrip("/"),
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY") or None,
            runs_dir=Path(runs_dir) if runs_dir else None,
        )

    @property
    def has_database(self) -> bool:
        """Whether chat sessions should be persisted to Supabase."""
        return bool(self.supabase_url and self.supabase_anon_key)

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not self.anthropic_api_key:
            errors.append("No API key found. Set ANTHROPIC_API_KEY")

        if self.ai_provider != "anthropic":
            errors.append(f"Unsupported AI_PROVIDER: {self.ai_provider} (only 'anthropic' is supported)")

        if not 0 < self.port < 65536:
            errors.append("port must be between 1 and 65535")

        if self.max_tokens <= 0:
            errors.append("max_tokens must be positive")

        if self.web_fetch_chars <= 0:
            errors.append("web_fetch_chars must be positive")

        if bool(self.supabase_url) != bool(self.supabase_anon_key):
            errors.append("SUPABASE_URL and SUPABASE_ANON_KEY must be set together")

        return errors

    def to_dict(self) -> dict:
        """Convert config to dictionary (for logging/display)."""
        return {
            "ai_provider": self.ai_provider,
            "host": self.host,
            "port": self.port,
            "log_level": self.log_level,
            "default_model": self.default_model,
            "max_tokens": self.max_tokens,
            "web_fetch_chars": self.web_fetch_chars,
            "github_api_url": self.github_api_url,
            "runs_dir": str(self.runs_dir) if self.runs_dir else None,
            "has_anthropic_key": bool(self.anthropic_api_key),
            "has_database": self.has_database,
        }
