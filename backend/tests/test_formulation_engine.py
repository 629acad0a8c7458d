"""
test_formulation_engine.py — Unit tests for FormulationEngine.

Tests cover:
  - Per-formula success, completion, KPI and status
  - Global KPI weighted by max(1, trials)
  - Dashboard totals
  - Formula schema validation (ingredients, trial cap)
"""

import pytest
from pydantic import ValidationError

from opsboard.models.records import Formula


def _formula(name="F1", passed=0, failed=0, max_essais=5, target=80, ingredients=("resin",)):
    return {
        "name": name,
        "ingredients": list(ingredients),
        "maxEssais": max_essais,
        "target": target,
        "essais": [{"result": "passed"}] * passed + [{"result": "failed"}] * failed,
    }


class TestScoreFormula:

    def test_success_and_completion_at_80(self, formulation_engine):
        """
        16 passed of 20 trials → success 80 %.
        20 of 25 allowed trials → completion 80 %.
        KPI = round(80 × 0.7 + 80 × 0.3) = 80.
        """
        scored = formulation_engine.score_formula(_formula(passed=16, failed=4, max_essais=25))
        assert scored["success_rate"] == 80
        assert scored["completion_rate"] == 80
        assert scored["kpi"] == 80
        assert scored["status"] == "success"

    def test_untested_formula(self, formulation_engine):
        scored = formulation_engine.score_formula(_formula())
        assert scored["success_rate"] == 0
        assert scored["kpi"] == 0
        assert scored["status"] == "danger"

    def test_completion_not_clamped(self, formulation_engine):
        """7 trials against a cap of 5 → completion 140 %."""
        scored = formulation_engine.score_formula(_formula(passed=7, max_essais=5))
        assert scored["completion_rate"] == 140
        assert scored["kpi"] == round(100 * 0.7 + 140 * 0.3)

    def test_warning_between_half_and_target(self, formulation_engine):
        """3/5 = 60 % is below the 80 % target but at least 50 %."""
        scored = formulation_engine.score_formula(_formula(passed=3, failed=2))
        assert scored["status"] == "warning"


class TestGlobalKPI:

    def test_weighted_by_trial_count(self, formulation_engine, sample_formulas):
        """
        Adhesive: success 80, completion 100 → KPI round(56 + 30) = 86, weight 5.
        Sealant: no trials → KPI 0, weight 1.
        Global = round((86 × 5 + 0 × 1) / 6) = round(71.7) = 72.
        """
        result = formulation_engine.aggregate(sample_formulas)
        assert result["global_kpi"] == 72
        assert result["total_formulas"] == 2
        assert result["active_formulas"] == 1
        assert result["total_essais"] == 5
        assert result["successful_essais"] == 4
        assert result["global_success_rate"] == 80
        assert result["formulas_above_target"] == 1
        assert result["average_essais_per_formula"] == 3

    def test_capped_at_100(self, formulation_engine):
        """One formula at KPI 112 (7 trials of 5) → team figure 100, formula keeps 112."""
        result = formulation_engine.aggregate([_formula(passed=7, max_essais=5)])
        assert result["formulas"][0]["kpi"] == 112
        assert result["global_kpi"] == 100

    def test_no_formulas(self, formulation_engine):
        result = formulation_engine.aggregate([])
        assert result["global_kpi"] == 0
        assert result["global_success_rate"] == 0
        assert result["average_essais_per_formula"] == 0


class TestFormulaSchema:

    def test_duplicate_ingredient_rejected(self):
        with pytest.raises(ValidationError):
            Formula.model_validate(_formula(ingredients=("Resin", "resin")))

    def test_empty_ingredients_rejected(self):
        with pytest.raises(ValidationError):
            Formula.model_validate(_formula(ingredients=()))

    def test_trial_cap_must_be_positive(self):
        with pytest.raises(ValidationError):
            Formula.model_validate(_formula(max_essais=0))

    def test_more_trials_than_cap_is_allowed(self):
        formula = Formula.model_validate(_formula(passed=6, max_essais=5))
        assert len(formula.essais) == 6
