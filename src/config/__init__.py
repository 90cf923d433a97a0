"""
Configuration package for zs

Provides application settings via environment variables using pydantic-settings.
"""

from .settings import appsettings, AppSettings, settings_load

__all__ = ["appsettings", "AppSettings", "settings_load"]
