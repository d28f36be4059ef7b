"""Broadcast campaigns, send pacing and delivery tracking."""

from .delivery import DeliveryTracker
from .engine import BroadcastEngine
from .throttle import TokenBucket

__all__ = ["BroadcastEngine", "DeliveryTracker", "TokenBucket"]
