"""Collaborator services: credentials and external resyncs."""

from .credentials import CredentialResolver, EnvironmentCredentialResolver
from .external_sync import ExternalSyncService, LoggingExternalSync

__all__ = [
    "CredentialResolver",
    "EnvironmentCredentialResolver",
    "ExternalSyncService",
    "LoggingExternalSync",
]
