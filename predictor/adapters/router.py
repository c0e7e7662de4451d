from __future__ import annotations
"""Prediction router: primary provider first, then an ordered fallback chain.

The primary is attempted exactly once. When it fails and fallback is enabled,
every configured provider in the fallback order gets up to ``max_retries``
attempts with a fixed ``retry_delay`` between attempts. Every failure is kept
in an ``OrchestrationError`` so the caller sees the whole trail when the chain
is exhausted.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Union

from core.errors import AllProvidersExhausted, NoProviderConfigured, ProviderError
from core.logging import logger

from ..models import (
    OrchestrationError,
    PredictionOptions,
    PredictionRequest,
    RawProviderResponse,
)
from .providers import DEFAULT_TIMEOUT, BaseProvider, create_provider
from .registry import DEFAULT_PRIMARY_PROVIDER, describe, is_known
from .store import CredentialStore, FallbackPolicy, configured_provider_ids

__all__ = ["PredictionRouter"]

AdapterFactory = Callable[[str], BaseProvider]
Sleep = Callable[[float], Awaitable[None]]


class PredictionRouter:
    """Sequential multi-provider orchestrator.

    Args:
        store: credential and fallback-policy source.
        adapter_factory: builds an adapter for a provider id.
        sleep: coroutine awaited between retries.
        timeout: per-attempt HTTP timeout handed to the default adapters.
    """

    def __init__(
        self,
        store: CredentialStore,
        adapter_factory: Optional[AdapterFactory] = None,
        sleep: Sleep = asyncio.sleep,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._store = store
        self._adapter_factory = adapter_factory or (lambda pid: create_provider(pid, timeout=timeout))
        self._sleep = sleep

    # ------------------------------------------------------------------
    def primary_provider_id(self) -> str:
        return self._store.get_primary_provider_id() or DEFAULT_PRIMARY_PROVIDER

    def fallback_chain(self, policy: FallbackPolicy) -> List[str]:
        """Fallback order restricted to known, configured providers."""
        configured = set(configured_provider_ids(self._store))
        return [pid for pid in policy.order if is_known(pid) and pid in configured]

    async def _attempt(self, provider_id: str, request: PredictionRequest) -> str:
        descriptor = describe(provider_id)
        credential = self._store.get(provider_id)
        if credential is None or not credential.is_configured:
            raise ProviderError(provider_id, f"No API key configured for {provider_id}")
        model = credential.model or descriptor.default_model
        adapter = self._adapter_factory(provider_id)
        return await adapter.call(credential, request.prompt, model, request.options)

    # ------------------------------------------------------------------
    async def predict_raw(self, request: Union[PredictionRequest, str]) -> RawProviderResponse:
        """Return the first successful response together with its provider id.

        Raises:
            NoProviderConfigured: no provider has an API key.
            UnknownProvider: the stored primary provider id is not supported.
            AllProvidersExhausted: the primary and all fallbacks failed, or the
                primary failed with fallback disabled.
        """
        if isinstance(request, str):
            request = PredictionRequest(prompt=request)

        if not configured_provider_ids(self._store):
            raise NoProviderConfigured()

        trail = OrchestrationError()
        primary_id = self.primary_provider_id()
        describe(primary_id)

        try:
            text = await self._attempt(primary_id, request)
            return RawProviderResponse(provider_id=primary_id, text=text)
        except Exception as e:
            trail.record(primary_id, 1, e)
            logger.warning(f"Primary provider failed: {e}", extra={"provider_id": primary_id})

        policy = self._store.get_fallback_policy()
        if not policy.enabled:
            trail.terminal = True
            trail.fallback_disabled = True
            raise AllProvidersExhausted(trail)

        for provider_id in self.fallback_chain(policy):
            for attempt in range(1, policy.max_retries + 1):
                try:
                    logger.info(
                        f"Trying fallback provider: {provider_id} (attempt {attempt})",
                        extra={"provider_id": provider_id},
                    )
                    text = await self._attempt(provider_id, request)
                    return RawProviderResponse(provider_id=provider_id, text=text)
                except Exception as e:
                    trail.record(provider_id, attempt, e)
                    logger.warning(
                        f"Fallback provider {provider_id} attempt {attempt} failed: {e}",
                        extra={"provider_id": provider_id},
                    )
                    if attempt < policy.max_retries:
                        await self._sleep(policy.retry_delay)

        trail.terminal = True
        raise AllProvidersExhausted(trail)

    async def predict(self, request: Union[PredictionRequest, str]) -> str:
        """Return the winning raw text."""
        return (await self.predict_raw(request)).text

    async def test_connection(self, provider_id: str) -> bool:
        """Send one short probe to a single provider, without retries or fallback."""
        probe = PredictionRequest(
            prompt="Reply with OK.",
            options=PredictionOptions(temperature=0, max_tokens=5),
        )
        try:
            await self._attempt(provider_id, probe)
        except ProviderError as e:
            logger.warning(f"{provider_id} API connection test failed: {e}", extra={"provider_id": provider_id})
            return False
        logger.info(f"{provider_id} API connection test successful", extra={"provider_id": provider_id})
        return True
