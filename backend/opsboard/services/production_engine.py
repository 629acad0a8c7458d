"""
production_engine.py — Monthly production output aggregation.

One logged task is one production entry; entries are not deduplicated by
date, so ``production_days`` is the entry count.
"""

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from opsboard.config import FULL_PRODUCTIVITY_KG_PER_DAY
from opsboard.models.records import AttendanceEmployee, ProductionTask, coerce_all
from opsboard.services.duration import round_half_up
from opsboard.services.errors import KPIValidationError


class ProductionEngine:
    """
    Production totals and averages.

    ``full_productivity_kg`` is the average kg per entry that the
    efficiency proxy treats as 100 %. Defaults to the configured value.
    """

    def __init__(self, full_productivity_kg: Optional[float] = None) -> None:
        value = FULL_PRODUCTIVITY_KG_PER_DAY if full_productivity_kg is None else float(full_productivity_kg)
        if value <= 0:
            raise KPIValidationError(f"full_productivity_kg must be positive; received {value}")
        self.full_productivity_kg = value

    def aggregate(self, tasks: Iterable[Any]) -> Dict[str, Any]:
        items: List[ProductionTask] = coerce_all(ProductionTask, tasks)
        total = sum(t.quantity_kg for t in items)
        days = len(items)
        avg = round_half_up(total / days) if days else 0
        return {
            "total_production": round(total, 2),
            "production_days": days,
            "avg_production": avg,
            "efficiency_proxy": self.efficiency_proxy(avg),
        }

    def efficiency_proxy(self, avg_production: float) -> int:
        """min(100, round(avg / full_productivity_kg × 100))."""
        return min(100, round_half_up(avg_production / self.full_productivity_kg * 100))

    def daily_totals(self, tasks: Iterable[Any]) -> List[Dict[str, Any]]:
        """kg per calendar date, oldest first."""
        by_date: Dict[Any, float] = defaultdict(float)
        for t in coerce_all(ProductionTask, tasks):
            by_date[t.date] += t.quantity_kg
        return [
            {"date": d.isoformat(), "quantity_kg": round(kg, 2)}
            for d, kg in sorted(by_date.items())
        ]

    def aggregate_team(self, employees: Iterable[Any]) -> Dict[str, Any]:
        """Team totals over every employee's tasks, with the per-employee split."""
        emps: List[AttendanceEmployee] = coerce_all(AttendanceEmployee, employees)
        pooled: List[ProductionTask] = []
        per_employee = []
        for emp in emps:
            pooled.extend(emp.production_tasks)
            per_employee.append({
                "employee_id": emp.id,
                "employee_name": emp.name,
                **self.aggregate(emp.production_tasks),
            })

        team = self.aggregate(pooled)
        team["employees"] = per_employee
        team["daily_totals"] = self.daily_totals(pooled)
        return team
