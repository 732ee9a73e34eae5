"""
Configuration module.
Exports the singleton settings instance.
"""
from .settings import settings, Settings

__all__ = ["settings", "Settings"]
