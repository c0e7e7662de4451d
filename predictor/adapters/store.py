"""Credential and fallback-policy stores consumed by the router.

The router only depends on the ``CredentialStore`` protocol. Three backends are
provided:

* ``InMemoryCredentialStore`` for tests and embedding.
* ``JsonCredentialStore`` persists everything in one JSON document using the
  ``<provider>Config`` / ``fallbackSettings`` / ``primaryApiProvider`` keys
  written by the admin dashboard.
* ``EnvCredentialStore`` reads API keys from the environment and the policy
  from ``AppSettings``.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from core import env
from core.config import get_settings
from core.errors import ConfigError
from .registry import is_known, provider_ids

logger = logging.getLogger(__name__)


class ProviderCredential(BaseModel):
    """API key plus optional model and endpoint overrides for one provider."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    api_key: Optional[str] = None
    model: Optional[str] = None
    endpoint: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


class FallbackPolicy(BaseModel):
    """Global fallback settings: whether to fall back, how often and in which order."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    enabled: bool = True
    max_retries: int = Field(2, ge=1)
    retry_delay: float = Field(2.0, ge=0, description="Seconds between attempts on one provider")
    order: List[str] = Field(default_factory=provider_ids)

    @field_validator("order")
    @classmethod
    def _dedupe_known(cls, order: List[str]) -> List[str]:
        unknown = [p for p in order if not is_known(p)]
        if unknown:
            logger.warning(f"Ignoring unknown provider(s) in fallback order: {', '.join(unknown)}")
        # First occurrence wins
        return list(dict.fromkeys(p for p in order if is_known(p)))


class CredentialStore(Protocol):
    def get(self, provider_id: str) -> Optional[ProviderCredential]: ...

    def get_fallback_policy(self) -> FallbackPolicy: ...

    def get_primary_provider_id(self) -> Optional[str]: ...


def configured_provider_ids(store: CredentialStore) -> List[str]:
    """Provider ids, in registry order, whose credential carries an API key."""
    configured = []
    for provider_id in provider_ids():
        credential = store.get(provider_id)
        if credential is not None and credential.is_configured:
            configured.append(provider_id)
    return configured


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryCredentialStore:
    def __init__(
        self,
        credentials: Optional[Dict[str, ProviderCredential]] = None,
        policy: Optional[FallbackPolicy] = None,
        primary: Optional[str] = None,
    ) -> None:
        self._credentials: Dict[str, ProviderCredential] = dict(credentials or {})
        self._policy = policy or FallbackPolicy()
        self._primary = primary

    def get(self, provider_id: str) -> Optional[ProviderCredential]:
        return self._credentials.get(provider_id)

    def get_fallback_policy(self) -> FallbackPolicy:
        return self._policy

    def get_primary_provider_id(self) -> Optional[str]:
        return self._primary

    def save_credential(self, provider_id: str, credential: ProviderCredential) -> None:
        self._credentials[provider_id] = credential

    def save_fallback_policy(self, policy: FallbackPolicy) -> None:
        self._policy = policy

    def set_primary_provider(self, provider_id: str) -> None:
        self._primary = provider_id


# ---------------------------------------------------------------------------
# JSON file store
# ---------------------------------------------------------------------------


class JsonCredentialStore:
    """File-backed store. The whole document is re-read on every lookup."""

    PRIMARY_KEY = "primaryApiProvider"
    FALLBACK_KEY = "fallbackSettings"

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @staticmethod
    def _credential_key(provider_id: str) -> str:
        return f"{provider_id}Config"

    def _read(self) -> Dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Credential store '{self.path}' is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Credential store '{self.path}' must contain a JSON object")
        return data

    def _write(self, data: Dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def get(self, provider_id: str) -> Optional[ProviderCredential]:
        raw = self._read().get(self._credential_key(provider_id))
        if not raw:
            return None
        try:
            return ProviderCredential.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid credential for '{provider_id}': {e}") from e

    def get_fallback_policy(self) -> FallbackPolicy:
        raw = self._read().get(self.FALLBACK_KEY) or {}
        try:
            return FallbackPolicy.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid fallback settings: {e}") from e

    def get_primary_provider_id(self) -> Optional[str]:
        return self._read().get(self.PRIMARY_KEY)

    def save_credential(self, provider_id: str, credential: ProviderCredential) -> None:
        data = self._read()
        data[self._credential_key(provider_id)] = credential.model_dump(by_alias=True, exclude_none=True)
        self._write(data)
        logger.info(f"{provider_id} configuration saved")

    def remove_credential(self, provider_id: str) -> None:
        data = self._read()
        if data.pop(self._credential_key(provider_id), None) is not None:
            self._write(data)
            logger.info(f"{provider_id} configuration removed")

    def save_fallback_policy(self, policy: FallbackPolicy) -> None:
        data = self._read()
        data[self.FALLBACK_KEY] = policy.model_dump(by_alias=True)
        self._write(data)
        logger.info("Fallback settings saved")

    def set_primary_provider(self, provider_id: str) -> None:
        data = self._read()
        data[self.PRIMARY_KEY] = provider_id
        self._write(data)


# ---------------------------------------------------------------------------
# Environment store
# ---------------------------------------------------------------------------


class EnvCredentialStore:
    """API keys from environment variables, policy from application settings."""

    def __init__(self, settings=None) -> None:
        self._settings = settings if settings is not None else get_settings().app

    def get(self, provider_id: str) -> Optional[ProviderCredential]:
        values = env.read_provider_env(provider_id)
        if not values["api_key"]:
            return None
        return ProviderCredential(**values)

    def get_fallback_policy(self) -> FallbackPolicy:
        s = self._settings
        try:
            return FallbackPolicy(
                enabled=s.FALLBACK_ENABLED,
                max_retries=s.FALLBACK_MAX_RETRIES,
                retry_delay=s.FALLBACK_RETRY_DELAY,
                order=s.FALLBACK_ORDER,
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid fallback settings: {e}") from e

    def get_primary_provider_id(self) -> Optional[str]:
        return self._settings.PRIMARY_PROVIDER
