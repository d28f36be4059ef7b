"""Outbound messaging: send adapter interface, Meta implementations and errors."""
