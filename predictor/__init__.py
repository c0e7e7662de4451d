"""Reaction prediction core: provider orchestration and response normalization."""

from .models import PredictionOptions, PredictionRequest, StructuredPrediction
from .normalizer import default_prediction, parse

__all__ = [
    "PredictionOptions",
    "PredictionRequest",
    "StructuredPrediction",
    "default_prediction",
    "parse",
]
