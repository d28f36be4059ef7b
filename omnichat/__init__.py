"""
Omnichat - multi-channel social messaging pipeline.

Webhook ingestion, intent classification and auto-response, broadcast
campaigns and delivery tracking for WhatsApp, Instagram and Facebook.
"""

from .core.config.settings import settings

__version__ = settings.version

__all__ = ["__version__"]
