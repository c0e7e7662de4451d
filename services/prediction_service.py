"""Reaction prediction service: local knowledge base first, providers second."""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from core.config import get_settings
from core.errors import ChemPilotError
from core.logging import logger, setup_logging
from predictor.adapters.router import PredictionRouter
from predictor.adapters.store import EnvCredentialStore, JsonCredentialStore
from predictor.models import PredictionOptions, PredictionRequest, StructuredPrediction
from predictor.normalizer import parse
from services.reaction_database import ReactionDatabase, to_prediction


def build_prediction_prompt(
    reactants: Sequence[str],
    reagents: Sequence[str] = (),
    temperature: str = "25",
    temperature_unit: str = "°C",
    solvent: str = "Water",
    pressure: str = "1",
    time: str = "2",
) -> str:
    """Build the chemistry-expert prompt sent to the providers."""
    if not [r for r in reactants if r and r.strip()]:
        raise ValueError("At least one reactant is required")

    return f"""You are a chemistry expert AI. Analyze the following chemical reaction and provide a detailed prediction.

REACTANTS: {', '.join(reactants)}
REAGENTS: {', '.join(reagents)}
CONDITIONS:
- Temperature: {temperature} {temperature_unit}
- Solvent: {solvent}
- Pressure: {pressure} atm
- Time: {time} hours

Please provide a comprehensive analysis including:

1. REACTION TYPE: Determine the type of reaction (e.g., substitution, addition, elimination, oxidation, reduction, etc.)

2. PRODUCTS: Predict the main products of this reaction. List them clearly.

3. MECHANISM: Provide a step-by-step reaction mechanism with detailed explanation for each step.

4. METRICS:
   - Atom Economy (%)
   - Predicted Yield (%)
   - Reaction Time (hours)
   - Energy Barrier (kJ/mol)

5. OPTIMAL CONDITIONS: Suggest the best conditions for this reaction.

6. ALTERNATIVE PATHWAYS: Suggest 1-2 alternative reaction pathways if applicable.

Format your response clearly with headers for each section. Be scientifically accurate and provide detailed explanations."""


class PredictionResult(BaseModel):
    """Where a prediction came from and what it says."""
    source: str = Field(..., description="database, partial or provider")
    predictions: List[StructuredPrediction]
    provider_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "providerId": self.provider_id,
            "predictions": [p.to_dict() for p in self.predictions],
        }


class ReactionPredictionService:
    """Answers from the knowledge base when possible, otherwise asks the providers."""

    def __init__(self, router: PredictionRouter, database: ReactionDatabase):
        self.router = router
        self.database = database

    async def predict(
        self,
        reactants: Sequence[str],
        reagents: Sequence[str] = (),
        options: Optional[PredictionOptions] = None,
        **conditions: str,
    ) -> PredictionResult:
        reactants = [r.strip() for r in reactants if r and r.strip()]
        reagents = [r.strip() for r in reagents if r and r.strip()]
        if not reactants:
            raise ValueError("At least one reactant is required")

        matches = self.database.find_matches(reactants, reagents)
        if matches:
            logger.info(f"Found {len(matches)} matching reaction(s) in the local database")
            return PredictionResult(source="database", predictions=[to_prediction(r) for r in matches])

        partial = self.database.find_partial_matches(reactants)
        if partial:
            logger.info(f"Found {len(partial)} partial match(es) in the local database")
            return PredictionResult(source="partial", predictions=[to_prediction(r) for r in partial])

        prompt = build_prediction_prompt(reactants, reagents, **conditions)
        request = PredictionRequest(prompt=prompt, options=options or PredictionOptions())
        response = await self.router.predict_raw(request)
        return PredictionResult(
            source="provider",
            provider_id=response.provider_id,
            predictions=[parse(response.text)],
        )


def parse_args(argv: Optional[Sequence[str]] = None):
    """Parses command-line arguments."""
    parser = argparse.ArgumentParser(description="Predict the outcome of a chemical reaction.")
    parser.add_argument("-r", "--reactant", action="append", required=True, help="Reactant formula (repeatable).")
    parser.add_argument("-g", "--reagent", action="append", default=[], help="Reagent formula (repeatable).")
    parser.add_argument("--temperature", default="25", help="Temperature value. Default: 25")
    parser.add_argument("--temperature-unit", default="°C", help="Temperature unit. Default: °C")
    parser.add_argument("--solvent", default="Water", help="Solvent. Default: Water")
    parser.add_argument("--pressure", default="1", help="Pressure in atm. Default: 1")
    parser.add_argument("--time", default="2", help="Reaction time in hours. Default: 2")
    parser.add_argument("--store", help="JSON credential store. Default: environment variables.")
    parser.add_argument("--reactions", help="YAML reaction knowledge base.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main execution function."""
    args = parse_args(argv)
    settings = get_settings()
    setup_logging(logging.DEBUG if args.verbose else settings.app.LOG_LEVEL)

    store = JsonCredentialStore(args.store) if args.store else EnvCredentialStore(settings.app)
    router = PredictionRouter(store, timeout=settings.app.PROVIDER_TIMEOUT)

    try:
        database = ReactionDatabase.load(args.reactions or settings.reactions_path)
        service = ReactionPredictionService(router, database)
        result = asyncio.run(
            service.predict(
                args.reactant,
                args.reagent,
                temperature=args.temperature,
                temperature_unit=args.temperature_unit,
                solvent=args.solvent,
                pressure=args.pressure,
                time=args.time,
            )
        )
    except (ChemPilotError, ValueError) as e:
        logger.error(f"Prediction failed: {e}")
        return 1

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
