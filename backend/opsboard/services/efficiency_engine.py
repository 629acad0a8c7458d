"""
efficiency_engine.py — Task-completion (operator efficiency) aggregation.

The team KPI is the plain mean of employee completion rates: an operator
with no tasks contributes 0, and task volume carries no weight. The
volume-weighted figure is reported alongside for comparison only.
"""

from typing import Any, Dict, Iterable, List

from opsboard.models.records import EfficiencyEmployee, coerce_all
from opsboard.services.duration import round_half_up


class EfficiencyEngine:

    @staticmethod
    def completion_rate(completed: int, total: int) -> int:
        if total == 0:
            return 0
        return round_half_up(completed / total * 100)

    def employee_efficiency(self, employee: Any) -> Dict[str, Any]:
        emp = employee if isinstance(employee, EfficiencyEmployee) else EfficiencyEmployee.model_validate(employee)
        total = len(emp.tasks)
        completed = sum(1 for t in emp.tasks if t.completed)
        return {
            "employee_id": emp.id,
            "employee_name": emp.name,
            "total_tasks": total,
            "completed_tasks": completed,
            "completion_rate": self.completion_rate(completed, total),
            "estimated_minutes": sum(t.estimated_minutes for t in emp.tasks),
        }

    def aggregate_team(self, employees: Iterable[Any]) -> Dict[str, Any]:
        """
        Per-employee completion plus the team KPI.

        Employees with a blank name are left out of the team figures.
        """
        emps: List[EfficiencyEmployee] = [
            e for e in coerce_all(EfficiencyEmployee, employees) if e.name.strip()
        ]
        rows = [self.employee_efficiency(e) for e in emps]

        total_tasks = sum(r["total_tasks"] for r in rows)
        completed_tasks = sum(r["completed_tasks"] for r in rows)

        return {
            "operator_count": len(rows),
            "total_tasks": total_tasks,
            "completed_tasks": completed_tasks,
            "team_kpi": self.team_kpi(rows),
            "weighted_team_kpi": self.weighted_team_kpi(rows),
            "employees": rows,
        }

    @staticmethod
    def team_kpi(rows: List[Dict[str, Any]]) -> int:
        """Unweighted mean of employee completion rates; 0 with no employees."""
        if not rows:
            return 0
        return round_half_up(sum(r["completion_rate"] for r in rows) / len(rows))

    @staticmethod
    def weighted_team_kpi(rows: List[Dict[str, Any]]) -> int:
        """Completed over total tasks across the team (task-volume weighted)."""
        total = sum(r["total_tasks"] for r in rows)
        if total == 0:
            return 0
        return round_half_up(sum(r["completed_tasks"] for r in rows) / total * 100)
