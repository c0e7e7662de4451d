"""Adapters layer: provider registry, credential stores, provider adapters and routing.

The public API is intentionally minimal; callers compose
``parse(await PredictionRouter(store).predict(request))``.
"""

from __future__ import annotations

from .providers import BaseProvider, create_provider
from .registry import ProviderDescriptor, describe, provider_ids
from .router import PredictionRouter
from .store import (
    CredentialStore,
    EnvCredentialStore,
    FallbackPolicy,
    InMemoryCredentialStore,
    JsonCredentialStore,
    ProviderCredential,
)

__all__ = [
    "BaseProvider",
    "create_provider",
    "ProviderDescriptor",
    "describe",
    "provider_ids",
    "PredictionRouter",
    "CredentialStore",
    "EnvCredentialStore",
    "FallbackPolicy",
    "InMemoryCredentialStore",
    "JsonCredentialStore",
    "ProviderCredential",
]
