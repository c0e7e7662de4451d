"""Request, response and prediction records shared by the router and normalizer."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PredictionOptions(BaseModel):
    """Generation options forwarded to the provider."""
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_tokens: Optional[int] = Field(None, gt=0)


class PredictionRequest(BaseModel):
    """A prompt plus generation options."""
    prompt: str
    options: PredictionOptions = Field(default_factory=PredictionOptions)


class RawProviderResponse(BaseModel):
    """Text produced by the provider that won the orchestration."""
    provider_id: str
    text: str


class AttemptFailure(BaseModel):
    provider_id: str
    attempt: int
    message: str


class OrchestrationError(BaseModel):
    """Attempt log accumulated while walking the provider chain."""
    attempts: List[AttemptFailure] = Field(default_factory=list)
    terminal: bool = False
    fallback_disabled: bool = False

    def record(self, provider_id: str, attempt: int, error: Exception) -> None:
        self.attempts.append(
            AttemptFailure(provider_id=provider_id, attempt=attempt, message=str(error))
        )


# ---------------------------------------------------------------------------
# Structured prediction
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)


class MechanismStep(_CamelModel):
    step: int
    description: str
    equation: str


class ReactionMetrics(_CamelModel):
    atom_economy: str
    predicted_yield: str
    reaction_time: str
    energy_barrier: str


class ReactionConditions(_CamelModel):
    temperature: str
    solvent: str
    catalyst: str
    time: str


class AlternativePathway(_CamelModel):
    name: str
    confidence: str
    equation: str
    conditions: str


class StructuredPrediction(_CamelModel):
    """Fixed-shape prediction record; every field is always populated."""
    reaction_type: str
    products: List[str] = Field(..., min_length=1, max_length=5)
    mechanism: List[MechanismStep] = Field(..., min_length=1, max_length=8)
    metrics: ReactionMetrics
    conditions: ReactionConditions
    alternatives: List[AlternativePathway] = Field(..., min_length=1)

    def to_dict(self) -> dict:
        """camelCase dict for rendering collaborators."""
        return self.model_dump(by_alias=True)
