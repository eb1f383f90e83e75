"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml,
falling back to built-in defaults when the file is missing.

Usage:
    from aicademy.config.app_config import load_app_config, get_provider_config

    config = load_app_config()
    provider = get_provider_config("ollama")
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")

# Environment overrides
DB_PATH_ENV = "AICADEMY_DB_PATH"
ADMIN_KEY_ENV = "AICADEMY_ADMIN_KEY"


@dataclass
class ProviderConfig:
    """Configuration for a single chat-completion provider."""

    base_url: str | None
    default_model: str
    api_key_env: str | None = None

    def get_api_key(self) -> str | None:
        """Get API key from environment variable."""
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        return None


@dataclass
class TutorConfig:
    """Configuration for the AI tutor chat."""

    default_provider: str = "ollama"
    temperature: float = 0.7
    max_tokens: int = 1024
    timeout: int = 60
    recent_attempts: int = 5


@dataclass
class DatabaseConfig:
    """Relational store settings."""

    path: str = "db/aicademy.db"


@dataclass
class AuthConfig:
    """Auth provider settings."""

    session_ttl_hours: int = 24 * 7
    require_email_confirmation: bool = False
    password_iterations: int = 200_000


@dataclass
class DemoConfig:
    """Demo account settings."""

    email_domain: str = "aicademy.edu"
    password: str = "demo123"
    admin_key: str | None = None


@dataclass
class ClassesConfig:
    """Class code generation settings."""

    code_length: int = 6
    code_max_attempts: int = 10


@dataclass
class AppConfig:
    """Application-wide configuration."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    tutor: TutorConfig = field(default_factory=TutorConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    demo: DemoConfig = field(default_factory=DemoConfig)
    classes: ClassesConfig = field(default_factory=ClassesConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "providers": {
            "ollama": {
                "base_url": "http://localhost:11434/v1",
                "default_model": "llama3",
                "api_key_env": None,
            },
            "lmstudio": {
                "base_url": "http://localhost:1234/v1",
                "default_model": "llama-3.2-3b-instruct",
                "api_key_env": None,
            },
            "openai": {
                "base_url": None,
                "default_model": "gpt-4o-mini",
                "api_key_env": "OPENAI_API_KEY",
            },
        },
        "tutor": {
            "default_provider": "ollama",
            "temperature": 0.7,
            "max_tokens": 1024,
            "timeout": 60,
            "recent_attempts": 5,
        },
        "database": {"path": "db/aicademy.db"},
        "auth": {
            "session_ttl_hours": 24 * 7,
            "require_email_confirmation": False,
            "password_iterations": 200_000,
        },
        "demo": {
            "email_domain": "aicademy.edu",
            "password": "demo123",
            "admin_key": None,
        },
        "classes": {"code_length": 6, "code_max_attempts": 10},
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = _get_defaults()

    providers = {}
    for name, pconfig in data.get("providers", defaults["providers"]).items():
        providers[name] = ProviderConfig(
            base_url=pconfig.get("base_url"),
            default_model=pconfig.get("default_model", "default"),
            api_key_env=pconfig.get("api_key_env"),
        )

    tutor_data = {**defaults["tutor"], **(data.get("tutor") or {})}
    tutor = TutorConfig(
        default_provider=tutor_data["default_provider"],
        temperature=float(tutor_data["temperature"]),
        max_tokens=int(tutor_data["max_tokens"]),
        timeout=int(tutor_data["timeout"]),
        recent_attempts=int(tutor_data["recent_attempts"]),
    )

    db_data = {**defaults["database"], **(data.get("database") or {})}
    database = DatabaseConfig(path=os.environ.get(DB_PATH_ENV, db_data["path"]))

    auth_data = {**defaults["auth"], **(data.get("auth") or {})}
    auth = AuthConfig(
        session_ttl_hours=int(auth_data["session_ttl_hours"]),
        require_email_confirmation=bool(auth_data["require_email_confirmation"]),
        password_iterations=int(auth_data["password_iterations"]),
    )

    demo_data = {**defaults["demo"], **(data.get("demo") or {})}
    demo = DemoConfig(
        email_domain=demo_data["email_domain"],
        password=demo_data["password"],
        admin_key=os.environ.get(ADMIN_KEY_ENV, demo_data.get("admin_key")),
    )

    classes_data = {**defaults["classes"], **(data.get("classes") or {})}
    classes = ClassesConfig(
        code_length=int(classes_data["code_length"]),
        code_max_attempts=int(classes_data["code_max_attempts"]),
    )

    return AppConfig(
        providers=providers,
        tutor=tutor,
        database=database,
        auth=auth,
        demo=demo,
        classes=classes,
    )


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, falling back to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data: dict[str, Any]

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def get_provider_config(provider: str) -> ProviderConfig | None:
    """Get configuration for a specific provider.

    Args:
        provider: Provider name (e.g., "ollama", "openai")

    Returns:
        ProviderConfig or None if provider not found.
    """
    config = load_app_config()
    return config.providers.get(provider)


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
