"""Webhook payload and result schemas."""
