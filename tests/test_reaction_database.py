import json

import pytest

from core.config import BASE_DIR
from core.errors import ConfigError
from services.reaction_database import Reaction, ReactionDatabase, to_prediction

SEED_FILE = BASE_DIR / "configs" / "reactions.yml"


@pytest.fixture
def database():
    return ReactionDatabase.load(SEED_FILE)


def _reaction(**overrides):
    data = {
        "name": "Hydrogenation of ethene",
        "category": "addition",
        "reactants": ["C2H4", "H2"],
        "products": ["C2H6"],
        "reagents": ["Pd/C"],
    }
    data.update(overrides)
    return Reaction(**data)


def test_seed_file_loads(database):
    assert len(database.all()) == 3
    esterification = database.get("fischer-esterification")
    assert esterification.conditions.temperature == "78"
    assert esterification.metrics.yield_ == "67"
    assert esterification.reagents == ["H2SO4"]


class TestMatching:

    def test_exact_match_ignores_order_and_case(self, database):
        matches = database.find_matches(["naoh", "HCL"])
        assert [r.id for r in matches] == ["neutralization-hcl-naoh"]

    def test_exact_match_needs_every_reactant(self, database):
        assert database.find_matches(["HCl"]) == []
        assert database.find_matches(["HCl", "NaOH", "KOH"]) == []

    def test_reagents_match_by_substring(self, database):
        matches = database.find_matches(["CH3COOH", "C2H5OH"], ["h2so"])
        assert [r.id for r in matches] == ["fischer-esterification"]

    def test_unknown_reagent_rejects_match(self, database):
        assert database.find_matches(["CH3COOH", "C2H5OH"], ["NaBH4"]) == []

    def test_partial_match(self, database):
        matches = database.find_partial_matches(["CH4", "Cl2"])
        assert [r.id for r in matches] == ["methane-combustion"]

    def test_partial_match_limit(self):
        database = ReactionDatabase([
            _reaction(id=f"r{i}", reactants=["H2", f"X{i}"]) for i in range(5)
        ])
        assert len(database.find_partial_matches(["H2"])) == 3
        assert len(database.find_partial_matches(["H2"], limit=10)) == 5

    def test_no_match(self, database):
        assert database.find_partial_matches(["KMnO4"]) == []


class TestCrud:

    def test_add_and_get(self):
        database = ReactionDatabase()
        reaction = database.add(_reaction())
        assert database.get(reaction.id) is reaction
        assert len(reaction.id) == 12

    def test_update_keeps_identity(self):
        database = ReactionDatabase()
        original = database.add(_reaction())

        updated = database.update(original.id, _reaction(name="Catalytic hydrogenation"))

        assert updated.id == original.id
        assert updated.created_at == original.created_at
        assert database.get(original.id).name == "Catalytic hydrogenation"

    def test_update_missing(self):
        assert ReactionDatabase().update("missing", _reaction()) is None

    def test_delete(self, database):
        assert database.delete("methane-combustion") is True
        assert database.delete("methane-combustion") is False
        assert len(database.all()) == 2

    def test_search(self, database):
        assert [r.id for r in database.search("ESTER")] == ["fischer-esterification"]
        assert [r.id for r in database.search("co2")] == ["methane-combustion"]
        assert len(database.search("  ")) == 3

    def test_statistics(self, database):
        stats = database.statistics()
        assert stats["total"] == 3
        assert stats["by_category"] == {"acid-base": 1, "substitution": 1, "oxidation": 1}

    def test_reaction_requires_reactants(self):
        with pytest.raises(ValueError):
            Reaction(name="empty", reactants=[], products=["X"])


class TestPersistence:

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "reactions.yml"
        database = ReactionDatabase(path=path)
        reaction = database.add(_reaction(metrics={"yield": 95}))
        database.save()

        reloaded = ReactionDatabase.load(path)

        assert reloaded.get(reaction.id).metrics.yield_ == "95"
        assert reloaded.get(reaction.id).reagents == ["Pd/C"]

    def test_save_without_path(self):
        with pytest.raises(ConfigError):
            ReactionDatabase().save()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            ReactionDatabase.load(tmp_path / "absent.yml")

    def test_export_then_import(self, database):
        exported = json.loads(database.export_json())
        assert exported[0]["alternatePathways"][0]["confidence"] == "90%"

        fresh = ReactionDatabase()
        assert fresh.import_json(database.export_json()) == 3
        assert fresh.get("fischer-esterification").conditions.catalyst == "H2SO4"

    @pytest.mark.parametrize("payload", ["not json", '{"name": "x"}', '[{"name": "no reactants"}]'])
    def test_import_rejects_bad_payload(self, payload):
        with pytest.raises(ConfigError):
            ReactionDatabase().import_json(payload)


class TestToPrediction:

    def test_full_reaction(self, database):
        prediction = to_prediction(database.get("fischer-esterification"))

        assert prediction.reaction_type == "substitution"
        assert prediction.products == ["CH3COOC2H5", "H2O"]
        assert len(prediction.mechanism) == 4
        assert prediction.mechanism[0].equation.startswith("Step 1: Protonation")
        assert prediction.metrics.predicted_yield == "67%"
        assert prediction.metrics.atom_economy == "83%"
        assert prediction.metrics.reaction_time == "2 hours"
        assert prediction.metrics.energy_barrier == "N/A"
        assert prediction.conditions.temperature == "78°C"
        assert prediction.conditions.catalyst == "H2SO4"
        assert prediction.alternatives[0].name == "Alternative Conditions"

    def test_stored_alternatives_are_used(self, database):
        prediction = to_prediction(database.get("neutralization-hcl-naoh"))
        assert prediction.alternatives[0].name == "Neutralization with potassium hydroxide"
        assert prediction.conditions.catalyst == "None"

    def test_sparse_reaction(self):
        prediction = to_prediction(_reaction(category=None))

        assert prediction.reaction_type == "Hydrogenation of ethene"
        assert prediction.metrics.predicted_yield == "N/A"
        assert prediction.conditions.temperature == "N/A"
        assert prediction.conditions.solvent == "N/A"
        assert prediction.conditions.catalyst == "Pd/C"
        assert len(prediction.mechanism) == 1
