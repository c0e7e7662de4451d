"""Heuristic normalizer turning free-form provider text into a StructuredPrediction.

Every field has its own small extractor with an ordered list of patterns; the
first pattern that matches wins and a field-specific default is used when none
does. ``parse`` never raises: any failure degrades to ``default_prediction()``.
"""
import logging
import re
from typing import Callable, List, Optional, Sequence

from .models import (
    AlternativePathway,
    MechanismStep,
    ReactionConditions,
    ReactionMetrics,
    StructuredPrediction,
)

logger = logging.getLogger(__name__)

MAX_PRODUCTS = 5
MAX_MECHANISM_STEPS = 8
MIN_STEP_LENGTH = 10

_FLAGS = re.IGNORECASE

# A block runs until a line opening the next section (optionally numbered) or the end of text.
def _until(*sections: str) -> str:
    return r"(?=\n\s*(?:\d+[.)]\s*)?(?:" + "|".join(sections) + r")|\Z)"

_PRODUCT_END = _until("reaction mechanism", "mechanism", "conditions", "metrics", "optimal", "alternative")
_MECHANISM_END = _until("conditions", "metrics", "optimal", "alternative")

# Text up to a newline, comma or full stop; a dot followed by a digit is part of a number.
_PHRASE = r"((?:[^\n\r.,]|\.(?=\d))+)"

REACTION_TYPE_PATTERNS = [
    re.compile(r"reaction type:?\s*([^\n\r.!?]+)", _FLAGS),
    re.compile(r"type of reaction:?\s*([^\n\r.!?]+)", _FLAGS),
    re.compile(r"this is an?\s*([^\n\r.!?]+)\s*reaction", _FLAGS),
    re.compile(r"classified as:?\s*([^\n\r.!?]+)", _FLAGS),
]

PRODUCT_PATTERNS = [
    re.compile(r"products?:?\s*([\s\S]+?)" + _PRODUCT_END, _FLAGS),
    re.compile(r"will produce:?\s*([\s\S]+?)" + _PRODUCT_END, _FLAGS),
    re.compile(r"resulting in:?\s*([\s\S]+?)" + _PRODUCT_END, _FLAGS),
]

MECHANISM_PATTERNS = [
    re.compile(r"mechanism:?\s*([\s\S]+?)" + _MECHANISM_END, _FLAGS),
    re.compile(r"step-by-step:?\s*([\s\S]+?)" + _MECHANISM_END, _FLAGS),
    re.compile(r"reaction mechanism:?\s*([\s\S]+?)" + _MECHANISM_END, _FLAGS),
]

ATOM_ECONOMY_PATTERNS = [
    re.compile(r"atom\s+economy:?\s*(\d+(?:\.\d+)?)\s*%", _FLAGS),
]

YIELD_PATTERNS = [
    re.compile(r"yield:?\s*(\d+(?:\.\d+)?)\s*%", _FLAGS),
    re.compile(r"predicted\s+yield:?\s*(\d+(?:\.\d+)?)\s*%", _FLAGS),
    re.compile(r"expected\s+yield:?\s*(\d+(?:\.\d+)?)\s*%", _FLAGS),
]

REACTION_TIME_PATTERNS = [
    re.compile(r"time:?\s*(\d+(?:\.\d+)?)\s*h", _FLAGS),
    re.compile(r"reaction\s+time:?\s*(\d+(?:\.\d+)?)\s*h", _FLAGS),
    re.compile(r"duration:?\s*(\d+(?:\.\d+)?)\s*h", _FLAGS),
]

ENERGY_BARRIER_PATTERNS = [
    re.compile(r"energy\s+barrier:?\s*(\d+(?:\.\d+)?)\s*kJ", _FLAGS),
    re.compile(r"activation\s+energy:?\s*(\d+(?:\.\d+)?)\s*kJ", _FLAGS),
    re.compile(r"energy:?\s*(\d+(?:\.\d+)?)\s*kJ", _FLAGS),
]

TEMPERATURE_PATTERNS = [re.compile(r"temperature:?\s*(-?\d+(?:\.\d+)?\s*°?\s*[CFK])", _FLAGS)]
SOLVENT_PATTERNS = [re.compile(r"solvent:?\s*" + _PHRASE, _FLAGS)]
CATALYST_PATTERNS = [re.compile(r"catalyst:?\s*" + _PHRASE, _FLAGS)]
TIME_PATTERNS = [re.compile(r"time:?\s*" + _PHRASE, _FLAGS)]

ALTERNATIVE_PATTERNS = [
    re.compile(r"alternatives?(?:\s+pathways?)?\s*:?\s*([\s\S]+)$", _FLAGS),
]

_BULLET = re.compile(r"^[•\-*]\s*")
_PRODUCT_SEPARATORS = re.compile(r"[;,\n]|\band\b", _FLAGS)
_STEP_MARKERS = re.compile(r"\d+\.(?!\d)|\bstep\s+\d+", _FLAGS)
_LEADING_ARTICLE = re.compile(r"^an?\s+", _FLAGS)
_MARKDOWN_HEADER = re.compile(r"^[ \t]*#+[ \t]*", re.MULTILINE)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_REACTION_TYPE = "Chemical Reaction"
DEFAULT_PRODUCTS = ("Reaction Products",)


def default_mechanism() -> List[MechanismStep]:
    return [
        MechanismStep(
            step=1,
            description="Reaction mechanism details provided by AI",
            equation="Detailed mechanism analysis available",
        )
    ]


def default_metrics() -> ReactionMetrics:
    return ReactionMetrics(
        atom_economy="85%",
        predicted_yield="78%",
        reaction_time="2.5h",
        energy_barrier="45 kJ/mol",
    )


def default_conditions() -> ReactionConditions:
    return ReactionConditions(
        temperature="25°C",
        solvent="Water",
        catalyst="None",
        time="2 hours",
    )


def default_alternatives() -> List[AlternativePathway]:
    return [
        AlternativePathway(
            name="Alternative Conditions",
            confidence="65%",
            equation="Modified reaction parameters",
            conditions="Different temperature, solvent, or catalyst conditions",
        )
    ]


def default_prediction() -> StructuredPrediction:
    """The fully-defaulted record returned for empty or unusable text."""
    return StructuredPrediction(
        reaction_type=DEFAULT_REACTION_TYPE,
        products=list(DEFAULT_PRODUCTS),
        mechanism=default_mechanism(),
        metrics=default_metrics(),
        conditions=default_conditions(),
        alternatives=default_alternatives(),
    )


# ---------------------------------------------------------------------------
# Field extractors
# ---------------------------------------------------------------------------


def _first_group(
    patterns: Sequence[re.Pattern],
    text: str,
    clean: Callable[[str], str] = str.strip,
) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1):
            value = clean(match.group(1))
            if value:
                return value
    return None


def _strip_bullet(value: str) -> str:
    return _BULLET.sub("", value.strip()).strip()


def extract_reaction_type(text: str) -> str:
    value = _first_group(
        REACTION_TYPE_PATTERNS, text, lambda v: _LEADING_ARTICLE.sub("", v.strip()).strip()
    )
    return value or DEFAULT_REACTION_TYPE


def extract_products(text: str) -> List[str]:
    for pattern in PRODUCT_PATTERNS:
        match = pattern.search(text)
        if not match or not match.group(1):
            continue
        products = [_strip_bullet(p) for p in _PRODUCT_SEPARATORS.split(match.group(1))]
        products = [p for p in products if p][:MAX_PRODUCTS]
        if products:
            return products
    return list(DEFAULT_PRODUCTS)


def extract_mechanism(text: str) -> List[MechanismStep]:
    for pattern in MECHANISM_PATTERNS:
        match = pattern.search(text)
        if not match or not match.group(1):
            continue
        fragments = [
            f for f in _STEP_MARKERS.split(match.group(1))
            if len(f) >= MIN_STEP_LENGTH and f.strip()
        ][:MAX_MECHANISM_STEPS]
        if fragments:
            steps = []
            for index, fragment in enumerate(fragments, start=1):
                description = _strip_bullet(fragment.strip().lstrip(":)").strip())
                steps.append(
                    MechanismStep(
                        step=index,
                        description=description,
                        equation=f"Step {index}: {description}",
                    )
                )
            return steps
    return default_mechanism()


def extract_metrics(text: str) -> ReactionMetrics:
    metrics = default_metrics()
    atom_economy = _first_group(ATOM_ECONOMY_PATTERNS, text)
    if atom_economy:
        metrics.atom_economy = f"{atom_economy}%"
    predicted_yield = _first_group(YIELD_PATTERNS, text)
    if predicted_yield:
        metrics.predicted_yield = f"{predicted_yield}%"
    reaction_time = _first_group(REACTION_TIME_PATTERNS, text)
    if reaction_time:
        metrics.reaction_time = f"{reaction_time}h"
    energy_barrier = _first_group(ENERGY_BARRIER_PATTERNS, text)
    if energy_barrier:
        metrics.energy_barrier = f"{energy_barrier} kJ/mol"
    return metrics


def extract_conditions(text: str) -> ReactionConditions:
    conditions = default_conditions()
    conditions.temperature = _first_group(TEMPERATURE_PATTERNS, text) or conditions.temperature
    conditions.solvent = _first_group(SOLVENT_PATTERNS, text) or conditions.solvent
    conditions.catalyst = _first_group(CATALYST_PATTERNS, text) or conditions.catalyst
    conditions.time = _first_group(TIME_PATTERNS, text) or conditions.time
    return conditions


def extract_alternatives(text: str) -> List[AlternativePathway]:
    block = _first_group(ALTERNATIVE_PATTERNS, text)
    if block:
        return [
            AlternativePathway(
                name="Alternative Pathway",
                confidence="70%",
                equation="Alternative reaction conditions",
                conditions=block,
            )
        ]
    return default_alternatives()


def _clean(text: str) -> str:
    """Drop markdown emphasis and header markers that would break the patterns."""
    text = text.replace("**", "").replace("__", "")
    return _MARKDOWN_HEADER.sub("", text)


def parse(raw_text: str) -> StructuredPrediction:
    """Parse provider text into a complete StructuredPrediction. Never raises."""
    try:
        text = _clean(raw_text or "")
        return StructuredPrediction(
            reaction_type=extract_reaction_type(text),
            products=extract_products(text),
            mechanism=extract_mechanism(text),
            metrics=extract_metrics(text),
            conditions=extract_conditions(text),
            alternatives=extract_alternatives(text),
        )
    except Exception:
        logger.debug("Falling back to default prediction", exc_info=True)
        return default_prediction()
