"""Provider adapters for the supported text-generation services.

Each adapter knows two things about its provider: how to build the HTTP
request (URL, auth headers or query parameters, body) and where the generated
text lives in the response. Transport, status and shape failures all surface
as ``ProviderError``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type

import httpx

from core.errors import ProviderError, UnknownProvider
from core.logging import logger

from ..models import PredictionOptions
from .registry import ProviderDescriptor, describe
from .store import ProviderCredential

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000
DEFAULT_TIMEOUT = 30.0


@dataclass
class ProviderRequest:
    """Wire-level request produced by an adapter."""
    url: str
    json: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)


def _temperature(options: PredictionOptions) -> float:
    return DEFAULT_TEMPERATURE if options.temperature is None else options.temperature


def _max_tokens(options: PredictionOptions) -> int:
    return options.max_tokens or DEFAULT_MAX_TOKENS


class BaseProvider(ABC):
    """Base class for provider adapters."""

    provider_id: str = ""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.descriptor: ProviderDescriptor = describe(self.provider_id)
        self.timeout = timeout

    def endpoint(self, credential: ProviderCredential) -> str:
        return credential.endpoint or self.descriptor.network_address

    @abstractmethod
    def build_request(
        self,
        credential: ProviderCredential,
        prompt: str,
        model: str,
        options: PredictionOptions,
    ) -> ProviderRequest:
        """Translate a generic prompt into this provider's request."""
        pass

    @abstractmethod
    def extract_text(self, data: Dict[str, Any]) -> str:
        """Pull the generated text out of a decoded response body."""
        pass

    async def call(
        self,
        credential: ProviderCredential,
        prompt: str,
        model: str,
        options: Optional[PredictionOptions] = None,
    ) -> str:
        """Send one request and return the generated text."""
        options = options or PredictionOptions()
        request = self.build_request(credential, prompt, model, options)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    request.url,
                    headers={"Content-Type": "application/json", **request.headers},
                    params=request.params or None,
                    json=request.json,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                logger.error(f"{self.provider_id} API returned status {status}", extra={"provider_id": self.provider_id})
                raise ProviderError(self.provider_id, str(status)) from e
            except httpx.HTTPError as e:
                logger.error(f"{self.provider_id} API transport error: {type(e).__name__}", extra={"provider_id": self.provider_id})
                raise ProviderError(self.provider_id, str(e) or type(e).__name__) from e

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(self.provider_id, "malformed JSON response") from e

        try:
            text = self.extract_text(data)
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.provider_id, f"unexpected response shape ({e!r})") from e

        if not isinstance(text, str):
            raise ProviderError(self.provider_id, "response text is not a string")
        return text


class ChatCompletionsProvider(BaseProvider):
    """OpenAI-compatible chat completions API with a bearer token."""

    def build_request(self, credential, prompt, model, options):
        return ProviderRequest(
            url=self.endpoint(credential),
            headers={"Authorization": f"Bearer {credential.api_key}"},
            json={
                "model": model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": _temperature(options),
                "max_tokens": _max_tokens(options),
            },
        )

    def extract_text(self, data):
        return data["choices"][0]["message"]["content"]


class DeepSeekProvider(ChatCompletionsProvider):
    provider_id = "deepseek"

    def endpoint(self, credential: ProviderCredential) -> str:
        # An endpoint override is a base URL; the path is appended here.
        if credential.endpoint:
            return f"{credential.endpoint.rstrip('/')}/chat/completions"
        return self.descriptor.network_address


class ChatGPTProvider(ChatCompletionsProvider):
    provider_id = "chatgpt"


class MistralProvider(ChatCompletionsProvider):
    provider_id = "mistral"


class GroqProvider(ChatCompletionsProvider):
    provider_id = "groq"


class GeminiProvider(BaseProvider):
    """Google Gemini generateContent API; the key travels as a query parameter."""

    provider_id = "gemini"

    def build_request(self, credential, prompt, model, options):
        return ProviderRequest(
            url=f"{self.endpoint(credential)}{model}:generateContent",
            params={"key": credential.api_key or ""},
            json={
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {
                    "temperature": _temperature(options),
                    "maxOutputTokens": _max_tokens(options),
                },
            },
        )

    def extract_text(self, data):
        return data["candidates"][0]["content"]["parts"][0]["text"]


class ClaudeProvider(BaseProvider):
    """Anthropic Messages API."""

    provider_id = "claude"
    API_VERSION = "2023-06-01"

    def build_request(self, credential, prompt, model, options):
        return ProviderRequest(
            url=self.endpoint(credential),
            headers={
                "x-api-key": credential.api_key or "",
                "anthropic-version": self.API_VERSION,
            },
            json={
                "model": model,
                "max_tokens": _max_tokens(options),
                "messages": [{"role": "user", "content": prompt}],
                "temperature": _temperature(options),
            },
        )

    def extract_text(self, data):
        return data["content"][0]["text"]


PROVIDER_CLASSES: Dict[str, Type[BaseProvider]] = {
    cls.provider_id: cls
    for cls in (
        DeepSeekProvider,
        ChatGPTProvider,
        GeminiProvider,
        ClaudeProvider,
        MistralProvider,
        GroqProvider,
    )
}


# Provider factory
def create_provider(provider_id: str, **kwargs) -> BaseProvider:
    """Create an adapter instance by provider id."""
    provider_class = PROVIDER_CLASSES.get(provider_id)
    if not provider_class:
        raise UnknownProvider(provider_id)

    return provider_class(**kwargs)
