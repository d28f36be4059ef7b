"""Intent classification."""

from .classifier import INTENT_ACTIONS, INTENT_PATTERNS, classify

__all__ = ["INTENT_ACTIONS", "INTENT_PATTERNS", "classify"]
