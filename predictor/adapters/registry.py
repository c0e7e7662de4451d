"""Static registry of the supported text-generation providers."""
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from core.errors import UnknownProvider


class ProviderDescriptor(BaseModel):
    """Fixed network address and default model of one provider."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Provider identifier")
    network_address: str = Field(..., description="Base URL of the provider API")
    default_model: str = Field(..., description="Model used when no override is configured")


_PROVIDERS: Dict[str, ProviderDescriptor] = {
    descriptor.id: descriptor
    for descriptor in (
        ProviderDescriptor(
            id="deepseek",
            network_address="https://api.deepseek.com/v1/chat/completions",
            default_model="deepseek-chat",
        ),
        ProviderDescriptor(
            id="chatgpt",
            network_address="https://api.openai.com/v1/chat/completions",
            default_model="gpt-4",
        ),
        ProviderDescriptor(
            id="gemini",
            network_address="https://generativelanguage.googleapis.com/v1beta/models/",
            default_model="gemini-pro",
        ),
        ProviderDescriptor(
            id="claude",
            network_address="https://api.anthropic.com/v1/messages",
            default_model="claude-3-opus-20240229",
        ),
        ProviderDescriptor(
            id="mistral",
            network_address="https://api.mistral.ai/v1/chat/completions",
            default_model="mistral-large-latest",
        ),
        ProviderDescriptor(
            id="groq",
            network_address="https://api.groq.com/openai/v1/chat/completions",
            default_model="mixtral-8x7b-32768",
        ),
    )
}

DEFAULT_PRIMARY_PROVIDER = "deepseek"


def provider_ids() -> List[str]:
    """All supported provider ids, in registry order."""
    return list(_PROVIDERS.keys())


def is_known(provider_id: str) -> bool:
    return provider_id in _PROVIDERS


def describe(provider_id: str) -> ProviderDescriptor:
    """
    Look up the descriptor of a provider.

    Raises:
        UnknownProvider: if the id is not one of the supported providers.
    """
    try:
        return _PROVIDERS[provider_id]
    except KeyError:
        raise UnknownProvider(provider_id) from None
