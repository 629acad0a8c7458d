"""
safety_engine.py — Severity-weighted safety scoring.

Rules, in order:
  1. No incidents                         → 100
  2. Team count above the monthly target  → 0 (instant-fail ceiling)
  3. Otherwise                            → max(0, 100 − Σ weight(severity))

The ceiling applies to the team score only; an individual employee's score
uses rules 1 and 3.
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

from opsboard.config import SAFETY_NO_INCIDENT_SCORE, SEVERITY_WEIGHTS
from opsboard.models.records import SafetyEmployee, SafetyIncident, Severity, coerce_all
from opsboard.services.errors import KPIValidationError

logger = logging.getLogger("opsboard-kpi.safety")


class SafetyEngine:

    def __init__(self, severity_weights: Optional[Dict[str, int]] = None) -> None:
        weights = dict(SEVERITY_WEIGHTS if severity_weights is None else severity_weights)
        missing = [s.value for s in Severity if s.value not in weights]
        if missing:
            raise KPIValidationError(f"No penalty weight for severities: {', '.join(missing)}")
        if any(w < 0 for w in weights.values()):
            raise KPIValidationError("Severity weights cannot be negative")
        self.severity_weights = weights

    def penalty(self, incidents: List[SafetyIncident]) -> int:
        return sum(self.severity_weights[i.severity.value] for i in incidents)

    def score(self, incidents: Iterable[Any], monthly_target: Optional[float] = None) -> int:
        """
        Safety score for a set of incidents.

        Pass ``monthly_target`` for the team score (enforces the ceiling);
        leave it ``None`` for an individual employee.
        """
        items: List[SafetyIncident] = coerce_all(SafetyIncident, incidents)
        if not items:
            return SAFETY_NO_INCIDENT_SCORE
        if monthly_target is not None:
            if monthly_target < 0:
                raise KPIValidationError(f"monthly_target cannot be negative; received {monthly_target}")
            if len(items) > monthly_target:
                logger.info(
                    "Incident ceiling breached: %d incidents against a target of %s",
                    len(items), monthly_target,
                )
                return 0
        return max(0, 100 - self.penalty(items))

    def aggregate(self, incidents: Iterable[Any], monthly_target: float) -> Dict[str, Any]:
        items: List[SafetyIncident] = coerce_all(SafetyIncident, incidents)
        by_severity = Counter(i.severity.value for i in items)
        by_type = Counter(i.type.value for i in items)
        return {
            "total_incidents": len(items),
            "monthly_target": monthly_target,
            "ceiling_breached": len(items) > monthly_target,
            "penalty": self.penalty(items),
            "by_severity": {s.value: by_severity.get(s.value, 0) for s in Severity},
            "by_type": dict(by_type),
            "critical_incidents": by_severity.get(Severity.CRITICAL.value, 0),
            "safety_score": self.score(items, monthly_target),
        }

    def aggregate_team(self, employees: Iterable[Any], monthly_target: float) -> Dict[str, Any]:
        """Team score over all employees' incidents plus per-employee scores."""
        emps: List[SafetyEmployee] = coerce_all(SafetyEmployee, employees)
        pooled: List[SafetyIncident] = []
        rows = []
        for emp in emps:
            pooled.extend(emp.incidents)
            rows.append({
                "employee_id": emp.id,
                "employee_name": emp.name,
                "incident_count": len(emp.incidents),
                "safety_score": self.score(emp.incidents),
            })
        team = self.aggregate(pooled, monthly_target)
        team["employees"] = rows
        return team
