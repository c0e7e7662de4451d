# -*- coding: utf-8 -*-
"""
Unified Environment Variable Loader.

This module loads environment variables from a .env file and exposes the
provider API keys as Python constants. Each provider accepts several aliased
variable names; the first one that is set wins.

Example:
    import core.env
    print(core.env.PROVIDER_API_KEYS["claude"])
"""
import os
from typing import Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file located in the project root
# The search path starts from the current working directory and goes up.
load_dotenv()

def _first(*keys: str, default: str | None = None) -> str | None:
    """
    Return the value of the first environment variable that is set and not empty.

    Args:
        *keys: A sequence of environment variable names to check.
        default: The default value to return if no variable is found.

    Returns:
        The value of the first found environment variable, or the default value.
    """
    for key in keys:
        val = os.getenv(key)
        if val:
            return val
    return default

# --- Provider API keys and their aliases ---
PROVIDER_KEY_ALIASES: Dict[str, tuple] = {
    "deepseek": ("DEEPSEEK_API_KEY",),
    "chatgpt": ("CHATGPT_API_KEY", "OPENAI_API_KEY"),
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "claude": ("CLAUDE_API_KEY", "ANTHROPIC_API_KEY"),
    "mistral": ("MISTRAL_API_KEY",),
    "groq": ("GROQ_API_KEY",),
}

# --- Optional per-provider model and endpoint overrides ---
def _override(provider_id: str, suffix: str) -> Optional[str]:
    return _first(f"{provider_id.upper()}_{suffix}")

def read_provider_env(provider_id: str) -> Dict[str, Optional[str]]:
    """Re-read the environment for one provider (api_key, model, endpoint)."""
    return {
        "api_key": _first(*PROVIDER_KEY_ALIASES.get(provider_id, ())),
        "model": _override(provider_id, "MODEL"),
        "endpoint": _override(provider_id, "ENDPOINT"),
    }

PROVIDER_API_KEYS: Dict[str, str | None] = {
    provider_id: _first(*aliases) for provider_id, aliases in PROVIDER_KEY_ALIASES.items()
}
