"""Persistence models and shared enums."""
