"""Settings file handling for the observability provisioner."""

from settings.config import (
    ConfigError,
    ObservabilitySettings,
    load_settings,
    resolve_under_root,
)

__all__ = [
    "ConfigError",
    "ObservabilitySettings",
    "load_settings",
    "resolve_under_root",
]
