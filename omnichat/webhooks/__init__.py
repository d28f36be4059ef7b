"""Webhook verification, ingestion and routing."""
