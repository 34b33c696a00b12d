"""
PlanetFeed Configuration
=======================

Environment-driven settings loaded with pydantic-settings.
"""

from .settings import PlanetFeedSettings, get_settings, load_settings

__all__ = ["PlanetFeedSettings", "get_settings", "load_settings"]
