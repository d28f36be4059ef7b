"""Core configuration, logging and exceptions for Omnichat."""
