"""Configuration helpers for stores and display."""

from .settings import DEFAULT_DB_PATH, STORE_BACKENDS, Settings, load_settings

__all__ = [
    "DEFAULT_DB_PATH",
    "STORE_BACKENDS",
    "Settings",
    "load_settings",
]
