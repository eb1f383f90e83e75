"""Configuration package for AIcademy."""

from aicademy.config.app_config import (
    AppConfig,
    AuthConfig,
    ClassesConfig,
    DatabaseConfig,
    DemoConfig,
    ProviderConfig,
    TutorConfig,
    clear_config_cache,
    get_provider_config,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "AuthConfig",
    "ClassesConfig",
    "DatabaseConfig",
    "DemoConfig",
    "ProviderConfig",
    "TutorConfig",
    "clear_config_cache",
    "get_provider_config",
    "load_app_config",
]
