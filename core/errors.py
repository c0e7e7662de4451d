from typing import List, Optional


class ChemPilotError(Exception):
    """Base exception class for the ChemPilot prediction core."""
    pass

class ConfigError(ChemPilotError):
    """Raised when there is an error in a configuration file."""
    pass

class UnknownProvider(ChemPilotError):
    """Raised when a provider id is not one of the supported providers."""

    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(f"Unknown provider: {provider_id}")

class NoProviderConfigured(ChemPilotError):
    """Raised before any network attempt when no provider has an API key."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "No API providers configured. Please configure at least one API provider."
        )

class ProviderError(ChemPilotError):
    """Raised by an adapter when a single call to a provider fails."""

    def __init__(self, provider_id: str, reason: str):
        self.provider_id = provider_id
        self.reason = reason
        super().__init__(f"{provider_id} API error: {reason}")

class AllProvidersExhausted(ChemPilotError):
    """Raised when the primary and every fallback provider have failed.

    Carries the full ``OrchestrationError`` attempt log for diagnostics.
    """

    def __init__(self, error):
        self.error = error
        lines: List[str] = [
            f"{a.provider_id} (attempt {a.attempt}): {a.message}" for a in error.attempts
        ]
        if error.fallback_disabled and error.attempts:
            summary = f"Primary API provider failed: {error.attempts[0].message}. Fallback is disabled."
        else:
            summary = "All configured API providers failed."
        super().__init__(summary + ("\n" + "\n".join(lines) if lines else ""))

    @property
    def attempts(self):
        return self.error.attempts
