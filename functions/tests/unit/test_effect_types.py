"""Unit tests for effect-type evaluation and variable configuration."""

import pytest

from config.errors import EffectConfigurationError
from models.pricing_config import (
    EffectType,
    VariableConfig,
    VariableDefinition,
    VariableOption,
    multiplier_from_percentage,
    percentage_from_multiplier,
)
from services.catalog_data import build_default_variable_config
from services.effect_types import (
    EFFECT_EVALUATORS,
    EffectAccumulator,
    check_dispatch_table,
    evaluate_variables,
    resolve_option,
)


def _select_variable(effect_type: str, options: dict, default: str) -> VariableDefinition:
    return VariableDefinition.model_validate({
        "label": "Test",
        "default": default,
        "effectType": effect_type,
        "options": options,
    })


class TestPercentageConversion:
    """Tests for the value/multiplier pairing."""

    @pytest.mark.parametrize("percentage,multiplier", [
        (20, 1.2),
        (0, 1.0),
        (-10, 0.9),
        (40, 1.4),
    ])
    def test_round_trip(self, percentage, multiplier):
        assert multiplier_from_percentage(percentage) == pytest.approx(multiplier)
        assert percentage_from_multiplier(multiplier) == pytest.approx(percentage)

    def test_options_synced_on_load(self):
        definition = _select_variable(
            "material_cost_multiplier",
            {"standard": {"value": 0}, "premium": {"value": 40}},
            "standard"
        )

        assert definition.options["premium"].multiplier == pytest.approx(1.4)
        assert definition.options["standard"].multiplier == pytest.approx(1.0)

    def test_legacy_multiplier_only_option(self):
        definition = _select_variable(
            "total_project_multiplier",
            {"simple": {"multiplier": 1.0}, "complex": {"multiplier": 1.3}},
            "simple"
        )

        assert definition.options["complex"].value == pytest.approx(30)

    def test_value_wins_over_stale_multiplier(self):
        definition = _select_variable(
            "labor_time_percentage",
            {"hard": {"value": 20, "multiplier": 1.5}},
            "hard"
        )

        assert definition.options["hard"].multiplier == pytest.approx(1.2)


class TestVariableDefinition:
    """Tests for definition validation."""

    def test_default_must_be_an_option(self):
        with pytest.raises(ValueError):
            _select_variable("flat_additional_cost", {"none": {"value": 0}}, "major")

    def test_unknown_effect_type_rejected(self):
        with pytest.raises(ValueError):
            _select_variable("sales_tax", {"none": {"value": 0}}, "none")


class TestVariableConfigFromTree:
    """Tests for parsing stored variable trees."""

    def test_metadata_entries_skipped(self):
        config = VariableConfig.from_tree({
            "label": "Variables",
            "siteAccess": {
                "label": "Site Access",
                "formulaNote": "hours x (1 + pct/100)",
                "accessDifficulty": {
                    "default": "easy",
                    "effectType": "labor_time_percentage",
                    "options": {"easy": {"value": 0}, "difficult": {"value": 40}},
                },
            },
            "notes": {"label": "No variables here"},
        })

        assert list(config.groups) == ["siteAccess"]
        assert config.get_variable("siteAccess", "accessDifficulty") is not None
        assert config.default_selections() == {"siteAccess": {"accessDifficulty": "easy"}}

    def test_invalid_variable_raises_effect_configuration_error(self):
        with pytest.raises(EffectConfigurationError) as exc_info:
            VariableConfig.from_tree({
                "siteAccess": {
                    "accessDifficulty": {
                        "default": "easy",
                        "effectType": "sales_tax",
                        "options": {"easy": {"value": 0}},
                    },
                },
            })

        assert exc_info.value.variable == "siteAccess.accessDifficulty"

    def test_default_tree_has_every_effect_type(self):
        config = build_default_variable_config()
        effect_types = {definition.effect_type for _, _, definition in config.iter_variables()}

        assert effect_types == set(EffectType)


class TestDispatchTable:
    """Tests for evaluator coverage."""

    def test_every_effect_type_has_an_evaluator(self):
        assert set(EFFECT_EVALUATORS) == set(EffectType)
        check_dispatch_table()

    def test_missing_evaluator_detected(self):
        partial = dict(EFFECT_EVALUATORS)
        partial.pop(EffectType.CUTTING_COMPLEXITY)

        with pytest.raises(EffectConfigurationError) as exc_info:
            check_dispatch_table(partial)

        assert "cutting_complexity" in exc_info.value.message


class TestEvaluators:
    """Tests for each effect type's contribution."""

    def _evaluate(self, effect_type: EffectType, option: VariableOption) -> EffectAccumulator:
        acc = EffectAccumulator()
        EFFECT_EVALUATORS[effect_type](option, acc, "group.key")
        return acc

    def test_labor_time_percentage(self):
        acc = self._evaluate(EffectType.LABOR_TIME_PERCENTAGE, VariableOption(value=20))

        assert acc.labor_percentage == 20
        assert acc.applied == ["group.key: labor +20%"]

    def test_material_cost_multiplier(self):
        acc = self._evaluate(EffectType.MATERIAL_COST_MULTIPLIER, VariableOption(value=40))

        assert acc.material_multiplier == pytest.approx(1.4)

    def test_total_project_multiplier(self):
        acc = self._evaluate(EffectType.TOTAL_PROJECT_MULTIPLIER, VariableOption(multiplier=1.3))

        assert acc.project_multiplier == pytest.approx(1.3)

    def test_cutting_complexity(self):
        acc = self._evaluate(
            EffectType.CUTTING_COMPLEXITY,
            VariableOption(labor_percentage=20, material_waste=10)
        )

        assert acc.labor_percentage == 20
        assert acc.material_waste_percentage == 10

    def test_daily_equipment_cost(self):
        acc = self._evaluate(EffectType.DAILY_EQUIPMENT_COST, VariableOption(value=250))

        assert acc.daily_equipment_cost == 250

    def test_flat_additional_cost(self):
        acc = self._evaluate(EffectType.FLAT_ADDITIONAL_COST, VariableOption(value=500))

        assert acc.flat_addition == 500

    def test_zero_options_record_nothing_applied(self):
        acc = self._evaluate(EffectType.FLAT_ADDITIONAL_COST, VariableOption(value=0))

        assert acc.applied == []

    def test_empty_accumulator_is_neutral(self):
        acc = EffectAccumulator()

        assert acc.labor_percentage == 0
        assert acc.material_multiplier == 1
        assert acc.project_multiplier == 1
        assert acc.daily_equipment_cost == 0


class TestEvaluateVariables:
    """Tests for resolving selections across a variable tree."""

    def test_defaults_are_neutral(self):
        acc = evaluate_variables(build_default_variable_config())

        assert acc.labor_percentage == 0
        assert acc.material_multiplier == pytest.approx(1.0)
        assert acc.project_multiplier == pytest.approx(1.0)
        assert acc.flat_addition == 0
        assert acc.applied == []

    def test_selections_combine(self):
        acc = evaluate_variables(build_default_variable_config(), {
            "siteAccess": {"accessDifficulty": "moderate"},
            "labor": {"teamSize": "two"},
            "materials": {"cuttingComplexity": "complex"},
            "complexity": {"overallComplexity": "standard"},
        })

        assert acc.labor_percentage == 20 + 40 + 40
        assert acc.material_waste_percentage == 20
        assert acc.project_multiplier == pytest.approx(1.1)

    @pytest.mark.parametrize("low,high", [
        ("easy", "moderate"),
        ("moderate", "difficult"),
    ])
    def test_labor_monotonic(self, low, high):
        config = build_default_variable_config()
        low_acc = evaluate_variables(config, {"siteAccess": {"accessDifficulty": low}})
        high_acc = evaluate_variables(config, {"siteAccess": {"accessDifficulty": high}})

        assert high_acc.labor_percentage > low_acc.labor_percentage

    def test_unknown_option_raises(self):
        with pytest.raises(EffectConfigurationError) as exc_info:
            evaluate_variables(build_default_variable_config(), {
                "equipment": {"equipmentRequired": "crane"}
            })

        assert exc_info.value.variable == "equipment.equipmentRequired"


class TestResolveOption:
    """Tests for option lookup."""

    def test_number_variable(self):
        definition = VariableDefinition.model_validate({
            "type": "number",
            "default": 0,
            "effectType": "flat_additional_cost",
        })

        assert resolve_option(definition, "125.5", "site.haulAway").value == 125.5

    def test_number_variable_rejects_text(self):
        definition = VariableDefinition.model_validate({
            "type": "number",
            "default": 0,
            "effectType": "flat_additional_cost",
        })

        with pytest.raises(EffectConfigurationError):
            resolve_option(definition, "lots", "site.haulAway")

    def test_none_falls_back_to_default(self):
        definition = _select_variable(
            "labor_time_percentage",
            {"easy": {"value": 0}, "difficult": {"value": 40}},
            "difficult"
        )

        assert resolve_option(definition, None, "siteAccess.accessDifficulty").value == 40
