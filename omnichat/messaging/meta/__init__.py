"""Meta Graph API client and senders."""

from .client import GraphUrlBuilder, MetaGraphClient
from .messenger_sender import MessengerSender
from .whatsapp_sender import WhatsAppSender

__all__ = ["GraphUrlBuilder", "MessengerSender", "MetaGraphClient", "WhatsAppSender"]
