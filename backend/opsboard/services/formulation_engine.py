"""
formulation_engine.py — Formulation trial (essai) scoring.

Per formula:
  success_rate    = round(passed / trials × 100), 0 without trials
  completion_rate = trials / max_essais × 100, not clamped
  kpi             = round(success × 0.7 + completion × 0.3)

Team-wide, formula KPIs are averaged with weight max(1, trials), so a
formula nobody has tested yet still counts as one trial.
The team figure is capped at 100 because it is stored as the month's
kpi_value; per-formula KPIs above 100 are reported as computed.
"""

from typing import Any, Dict, Iterable, List

from opsboard.config import (
    FORMULA_COMPLETION_WEIGHT,
    FORMULA_SUCCESS_WEIGHT,
    FORMULA_WARNING_SUCCESS_MIN,
)
from opsboard.models.records import Formula, TrialResult, coerce_all
from opsboard.services.duration import round_half_up


class FormulationEngine:

    def score_formula(self, formula: Any) -> Dict[str, Any]:
        f = formula if isinstance(formula, Formula) else Formula.model_validate(formula)
        essais_count = len(f.essais)
        passed = sum(1 for e in f.essais if e.result is TrialResult.PASSED)

        success_rate = round_half_up(passed / essais_count * 100) if essais_count else 0
        completion_rate = essais_count / f.max_essais * 100
        kpi = round_half_up(
            success_rate * FORMULA_SUCCESS_WEIGHT + completion_rate * FORMULA_COMPLETION_WEIGHT
        )

        if success_rate >= f.target:
            status = "success"
        elif success_rate >= FORMULA_WARNING_SUCCESS_MIN:
            status = "warning"
        else:
            status = "danger"

        return {
            "name": f.name,
            "ingredients": list(f.ingredients),
            "essais_count": essais_count,
            "passed_count": passed,
            "max_essais": f.max_essais,
            "target": f.target,
            "success_rate": success_rate,
            "completion_rate": round(completion_rate, 2),
            "kpi": kpi,
            "status": status,
        }

    @staticmethod
    def global_kpi(scored: List[Dict[str, Any]]) -> int:
        """Mean of formula KPIs weighted by max(1, essais_count), capped at 100; 0 with no formulas."""
        if not scored:
            return 0
        weights = [max(1, s["essais_count"]) for s in scored]
        total = sum(s["kpi"] * w for s, w in zip(scored, weights))
        return min(100, round_half_up(total / sum(weights)))

    def aggregate(self, formulas: Iterable[Any]) -> Dict[str, Any]:
        items: List[Formula] = coerce_all(Formula, formulas)
        scored = [self.score_formula(f) for f in items]

        total_essais = sum(s["essais_count"] for s in scored)
        passed_essais = sum(s["passed_count"] for s in scored)
        return {
            "global_kpi": self.global_kpi(scored),
            "total_formulas": len(scored),
            "active_formulas": sum(1 for s in scored if s["essais_count"] > 0),
            "total_essais": total_essais,
            "successful_essais": passed_essais,
            "global_success_rate": round_half_up(passed_essais / total_essais * 100) if total_essais else 0,
            "formulas_above_target": sum(1 for s in scored if s["status"] == "success"),
            "average_essais_per_formula": round_half_up(total_essais / len(scored)) if scored else 0,
            "formulas": scored,
        }
