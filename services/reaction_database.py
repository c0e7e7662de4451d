"""Local reaction knowledge base.

Reactions are kept in a YAML file (``configs/reactions.yml`` by default) and
searched before any provider is contacted. Exact matches compare reactants as
a case-insensitive multiset; partial matches only need one reactant to overlap.
"""
import json
import logging
import uuid
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from core.config import load_yaml
from core.errors import ConfigError
from predictor.models import (
    AlternativePathway,
    MechanismStep,
    ReactionConditions,
    ReactionMetrics,
    StructuredPrediction,
)
from predictor.normalizer import default_alternatives, default_mechanism

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)


class StoredConditions(_CamelModel):
    temperature: Optional[str] = None
    temperature_unit: str = "°C"
    pressure: Optional[str] = None
    pressure_unit: str = "atm"
    time: Optional[str] = None
    time_unit: str = "hours"
    solvent: Optional[str] = None
    catalyst: Optional[str] = None


class StoredMetrics(_CamelModel):
    yield_: Optional[str] = Field(None, alias="yield")
    atom_economy: Optional[str] = None
    energy_efficiency: Optional[str] = None


class Reaction(_CamelModel):
    """One curated reaction."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    name: str = Field(..., min_length=1)
    category: Optional[str] = None
    difficulty: Optional[str] = None
    reactants: List[str] = Field(..., min_length=1)
    products: List[str] = Field(..., min_length=1)
    reagents: List[str] = Field(default_factory=list)
    conditions: StoredConditions = Field(default_factory=StoredConditions)
    metrics: StoredMetrics = Field(default_factory=StoredMetrics)
    mechanism: List[str] = Field(default_factory=list)
    alternate_pathways: List[AlternativePathway] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)


class ReactionLibrary(BaseModel):
    reactions: List[Reaction] = Field(default_factory=list)


def _lower(values: Iterable[str]) -> List[str]:
    return [v.strip().lower() for v in values if v and v.strip()]


def _overlaps(a: str, b: str) -> bool:
    return a in b or b in a


class ReactionDatabase:
    """In-memory view of the reaction library with optional YAML persistence."""

    def __init__(self, reactions: Optional[Sequence[Reaction]] = None, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._reactions: Dict[str, Reaction] = {r.id: r for r in (reactions or [])}

    @classmethod
    def load(cls, path: Path) -> "ReactionDatabase":
        library = load_yaml(path, ReactionLibrary)
        logger.info(f"Loaded {len(library.reactions)} reactions from {path}")
        return cls(library.reactions, path=path)

    def save(self) -> None:
        if self.path is None:
            raise ConfigError("Reaction database has no backing file")
        data = {"reactions": [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in self._reactions.values()]}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)

    # --- CRUD -------------------------------------------------------------

    def all(self) -> List[Reaction]:
        return list(self._reactions.values())

    def get(self, reaction_id: str) -> Optional[Reaction]:
        return self._reactions.get(reaction_id)

    def add(self, reaction: Reaction) -> Reaction:
        self._reactions[reaction.id] = reaction
        logger.info(f"Added reaction '{reaction.name}' ({reaction.id})")
        return reaction

    def update(self, reaction_id: str, reaction: Reaction) -> Optional[Reaction]:
        if reaction_id not in self._reactions:
            return None
        updated = reaction.model_copy(update={"id": reaction_id, "created_at": self._reactions[reaction_id].created_at})
        self._reactions[reaction_id] = updated
        return updated

    def delete(self, reaction_id: str) -> bool:
        return self._reactions.pop(reaction_id, None) is not None

    def search(self, term: str) -> List[Reaction]:
        """Case-insensitive search over name, category, reactants and products."""
        term = term.strip().lower()
        if not term:
            return self.all()
        results = []
        for reaction in self._reactions.values():
            haystack = [reaction.name, reaction.category or ""] + reaction.reactants + reaction.products
            if any(term in value.lower() for value in haystack):
                results.append(reaction)
        return results

    def statistics(self) -> Dict[str, object]:
        by_category = Counter(r.category or "uncategorized" for r in self._reactions.values())
        return {"total": len(self._reactions), "by_category": dict(by_category)}

    # --- Import / export --------------------------------------------------

    def export_json(self) -> str:
        return json.dumps(
            [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in self._reactions.values()],
            indent=2,
            ensure_ascii=False,
        )

    def import_json(self, payload: str) -> int:
        """Add every reaction in a JSON array; returns how many were imported."""
        try:
            items = json.loads(payload)
            if not isinstance(items, list):
                raise ValueError("expected a JSON array of reactions")
            reactions = [Reaction.model_validate(item) for item in items]
        except (ValueError, ValidationError) as e:
            raise ConfigError(f"Invalid reaction import: {e}") from e
        for reaction in reactions:
            self.add(reaction)
        return len(reactions)

    # --- Matching ---------------------------------------------------------

    def find_matches(self, reactants: Sequence[str], reagents: Sequence[str] = ()) -> List[Reaction]:
        """Reactions with exactly the given reactants (any order, any case).

        Reagents are optional; when given, each must overlap a stored reagent.
        """
        wanted = Counter(_lower(reactants))
        wanted_reagents = _lower(reagents)
        matches = []
        for reaction in self._reactions.values():
            if Counter(_lower(reaction.reactants)) != wanted:
                continue
            stored_reagents = _lower(reaction.reagents)
            if all(any(_overlaps(w, s) for s in stored_reagents) for w in wanted_reagents):
                matches.append(reaction)
        return matches

    def find_partial_matches(self, reactants: Sequence[str], limit: int = 3) -> List[Reaction]:
        """Reactions sharing at least one (substring-overlapping) reactant."""
        wanted = _lower(reactants)
        matches = []
        for reaction in self._reactions.values():
            stored = _lower(reaction.reactants)
            if any(_overlaps(w, s) for w in wanted for s in stored):
                matches.append(reaction)
        return matches[:limit]


def _with_unit(value: Optional[str], unit: str, sep: str = " ") -> str:
    return f"{value}{sep}{unit}".strip() if value else NOT_AVAILABLE


def to_prediction(reaction: Reaction) -> StructuredPrediction:
    """Render a stored reaction in the same shape as a provider prediction."""
    mechanism = [
        MechanismStep(step=i, description=text, equation=f"Step {i}: {text}")
        for i, text in enumerate(reaction.mechanism[:8], start=1)
    ] or default_mechanism()
    conditions = reaction.conditions
    metrics = reaction.metrics
    return StructuredPrediction(
        reaction_type=reaction.category or reaction.name,
        products=reaction.products[:5],
        mechanism=mechanism,
        metrics=ReactionMetrics(
            atom_economy=f"{metrics.atom_economy}%" if metrics.atom_economy else NOT_AVAILABLE,
            predicted_yield=f"{metrics.yield_}%" if metrics.yield_ else NOT_AVAILABLE,
            reaction_time=_with_unit(conditions.time, conditions.time_unit),
            energy_barrier=NOT_AVAILABLE,
        ),
        conditions=ReactionConditions(
            temperature=_with_unit(conditions.temperature, conditions.temperature_unit, sep=""),
            solvent=conditions.solvent or NOT_AVAILABLE,
            catalyst=conditions.catalyst or (", ".join(reaction.reagents) if reaction.reagents else "None"),
            time=_with_unit(conditions.time, conditions.time_unit),
        ),
        alternatives=list(reaction.alternate_pathways) or default_alternatives(),
    )
