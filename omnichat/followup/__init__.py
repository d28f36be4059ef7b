"""Auto-response dispatch and conversation tagging."""

from .dispatcher import AUTO_RESPONSES, AutoResponseDispatcher
from .tagger import ConversationTagger

__all__ = ["AUTO_RESPONSES", "AutoResponseDispatcher", "ConversationTagger"]
