"""Configuration for Omnichat."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
